"""Assertion primitives for HTTP responses.

Every check raises the builtin ``AssertionError`` with a message naming the
subject, the expected value and the actual value, e.g.
``HTTP status code: expected 200 but was 404``.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Iterable, Sized
from typing import Any

from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError
from jsonpath_ng.ext import parse as parse_jsonpath

from apiharness.core.messages import ProtocolResponse

_INDEFINITE_PATH = re.compile(r"\*|\.\.|\?|\[[^\]]*[:,][^\]]*\]")


def stringify(value: Any) -> str:
    """Render a JSON value the way the stringified assertions compare it.

    Numbers use their decimal form (floats keep a fractional part, so
    ``2.0`` stays ``2.0``), booleans are lowercase, null is ``null`` and
    containers are compact JSON.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value):
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def require_response(response: ProtocolResponse | None) -> ProtocolResponse:
    if response is None:
        raise AssertionError("No response received yet; send a request first")
    return response


def expect_equal(subject: str, expected: Any, actual: Any) -> None:
    if actual != expected:
        raise AssertionError(f"{subject}: expected {expected!r} but was {actual!r}")


def expect_one_of(subject: str, options: Iterable[Any], actual: Any) -> None:
    options = list(options)
    if actual not in options:
        raise AssertionError(f"{subject}: expected one of {options!r} but was {actual!r}")


def expect_contains(subject: str, expected: str, actual: str | None, ignore_case: bool = False) -> None:
    """Check that ``actual`` contains ``expected`` as a substring."""
    if actual is None:
        raise AssertionError(f"{subject}: expected to contain {expected!r} but was None")
    haystack, needle = (actual.lower(), expected.lower()) if ignore_case else (actual, expected)
    if needle not in haystack:
        raise AssertionError(f"{subject}: expected to contain {expected!r} but was {actual!r}")


def expect_not_contains(subject: str, unexpected: str, actual: str | None) -> None:
    if actual is not None and unexpected in actual:
        raise AssertionError(
            f"{subject}: expected not to contain {unexpected!r} but was {actual!r}"
        )


def expect_less_than(subject: str, limit: float, actual: float) -> None:
    if not actual < limit:
        raise AssertionError(f"{subject}: expected less than {limit} but was {actual}")


def expect_not_empty(subject: str, actual: Any) -> None:
    """Check a value is present; strings and collections must also be non-empty."""
    if actual is None:
        raise AssertionError(f"{subject}: expected a value but was null")
    if isinstance(actual, (str, list, dict)) and len(actual) == 0:
        raise AssertionError(f"{subject}: expected not to be empty but was {actual!r}")


def expect_size(subject: str, expected: int, actual: Any) -> None:
    if not isinstance(actual, Sized) or isinstance(actual, (str, bytes)):
        raise AssertionError(f"{subject}: expected a list but was {actual!r}")
    if len(actual) != expected:
        raise AssertionError(f"{subject}: expected {expected} items but was {len(actual)}")


def parse_json_body(response: ProtocolResponse) -> Any:
    """Parse the response body as JSON.

    Raises
    ------
    AssertionError
        If the body is not valid JSON
    """
    try:
        return json.loads(response.body)
    except (json.JSONDecodeError, TypeError) as e:
        raise AssertionError(f"Response body is not valid JSON: {e}") from None


def is_definite_path(path: str) -> bool:
    """Return whether a JSON path selects at most one value."""
    return _INDEFINITE_PATH.search(path) is None


def read_json_path(body: Any, path: str) -> Any:
    """Evaluate a JSON path against a parsed document.

    Parameters
    ----------
    body : Any
        Parsed JSON document
    path : str
        JSON path, e.g. ``$.items[0].name``

    Returns
    -------
    Any
        The single selected value for a definite path, or the list of
        matches for an indefinite one

    Raises
    ------
    AssertionError
        If the path is malformed, or a definite path selects nothing
    """
    try:
        expression = parse_jsonpath(path)
    except (JsonPathLexerError, JsonPathParserError) as e:
        raise AssertionError(f"Invalid JSON path '{path}': {e}") from None

    matches = [match.value for match in expression.find(body)]
    if not is_definite_path(path):
        return matches
    if not matches:
        raise AssertionError(f"JSON path '{path}': no value found in response body")
    return matches[0]


def json_path_value(response: ProtocolResponse, path: str) -> Any:
    return read_json_path(parse_json_body(response), path)


def as_number(subject: str, value: Any) -> int | float:
    """Coerce a JSON value to a number for numeric comparison."""
    if isinstance(value, bool):
        raise AssertionError(f"{subject}: expected a number but was {stringify(value)}")
    if isinstance(value, (int, float)):
        return value
    raise AssertionError(f"{subject}: expected a number but was {value!r}")
