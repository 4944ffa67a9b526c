"""Allow ``python -m apiharness``."""

from apiharness.cli.main import main

if __name__ == "__main__":
    main()
