"""CLI entry point for the API test harness."""

from __future__ import annotations

import logging
import os
import sys

import fire
from behave.__main__ import main as behave_main

from apiharness.cli.parsing import build_behave_args, parse_define_parameter
from apiharness.exceptions import HarnessError

logger = logging.getLogger(__name__)


def run_behave(args: list[str]) -> int:
    """Run behave with the given arguments and return its exit code.

    Parameters
    ----------
    args : list[str]
        Arguments as they would appear after ``behave`` on a command line

    Returns
    -------
    int
        0 when every scenario passed, non-zero otherwise
    """
    logger.debug("Running behave with arguments: %s", args)
    return int(behave_main(args) or 0)


class HarnessCLI:
    """Command set exposed through Fire."""

    def run(
        self,
        *paths: str,
        env: str | None = None,
        tags: str | None = None,
        define: str | list[str] | None = None,
        events_file: str | None = None,
        log_level: str | None = None,
    ) -> None:
        """Run feature files and exit with the suite's status.

        Parameters
        ----------
        *paths : str
            Feature files or directories, ``features`` when none are given
        env : str | None
            Environment whose overlay config is loaded, e.g. ``qa``
        tags : str | None
            Behave tag expression selecting scenarios
        define : str | list[str] | None
            Extra ``key=value`` config overrides
        events_file : str | None
            Path of a JSON Lines file receiving report events
        log_level : str | None
            Root log level, e.g. ``DEBUG``
        """
        args = build_behave_args(
            paths,
            env=env,
            tags=tags,
            definitions=parse_define_parameter(define),
            events_file=events_file,
            log_level=log_level,
        )
        sys.exit(run_behave(args))


def main() -> None:
    """Entry point for the ``apiharness`` console script.

    Harness and argument errors exit with status 1; set
    ``APIHARNESS_DEBUG=1`` to see the traceback instead.
    """
    debug_mode = os.environ.get("APIHARNESS_DEBUG") == "1"

    try:
        fire.Fire(HarnessCLI())
    except (HarnessError, ValueError) as e:
        if debug_mode:
            raise
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
