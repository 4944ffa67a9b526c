"""CLI argument parsing and conversion to behave arguments."""

from __future__ import annotations

from apiharness.constants import (
    ENVIRONMENT_OVERRIDE_KEY,
    EVENTS_FILE_USERDATA_KEY,
    LOG_LEVEL_USERDATA_KEY,
)

DEFAULT_FEATURE_PATH = "features"


def parse_define_parameter(define: str | list[str] | tuple[str, ...] | None) -> dict[str, str]:
    """Parse ``key=value`` definitions into an ordered mapping.

    Parameters
    ----------
    define : str | list[str] | tuple[str, ...] | None
        Single definition, comma-separated definitions, or a list of them

    Returns
    -------
    dict[str, str]
        Definitions keyed by name; later definitions win

    Raises
    ------
    ValueError
        If a definition has no ``=`` or an empty key
    """
    if define is None:
        return {}

    if isinstance(define, (list, tuple)):
        items = [str(item) for item in define]
    else:
        items = str(define).split(",")

    definitions: dict[str, str] = {}
    for item in items:
        item = item.strip()
        if not item:
            continue
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Invalid definition: '{item}' must have the form key=value")
        definitions[key] = value.strip()

    return definitions


def build_behave_args(
    paths: tuple[str, ...] | list[str],
    env: str | None = None,
    tags: str | None = None,
    definitions: dict[str, str] | None = None,
    events_file: str | None = None,
    log_level: str | None = None,
) -> list[str]:
    """Translate CLI options into a behave argument list.

    Harness options travel as behave user data (``-D key=value``), which the
    lifecycle hooks read as process-level configuration overrides.
    """
    userdata = dict(definitions or {})
    if env:
        userdata[ENVIRONMENT_OVERRIDE_KEY] = env
    if events_file:
        userdata[EVENTS_FILE_USERDATA_KEY] = str(events_file)
    if log_level:
        userdata[LOG_LEVEL_USERDATA_KEY] = str(log_level)

    args: list[str] = []
    if tags:
        args.extend(["--tags", str(tags)])
    for key, value in userdata.items():
        args.extend(["-D", f"{key}={value}"])
    args.extend(str(path) for path in paths or (DEFAULT_FEATURE_PATH,))
    return args
