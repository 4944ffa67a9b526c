"""Reusable behave step definitions for REST API testing.

Steps operate on the ``ScenarioContext`` installed at ``context.api`` by the
before-scenario hook. Import this module from a ``features/steps`` module to
make the phrases available to feature files::

    from apiharness.steps.rest_steps import *  # noqa: F401,F403

Every phrase is registered with ``@step``, so it matches after any keyword
(``Given``, ``When``, ``Then``, ``And`` or ``But``).
"""

from __future__ import annotations

import logging

from behave import step
from behave.model import Table
from behave.runner import Context

from apiharness.constants import BASE_URL_EXTRA, BASE_URL_OVERRIDE_KEY, DEFAULT_CONTENT_TYPE
from apiharness.core.context import ScenarioContext
from apiharness.core.messages import ProtocolRequest, ProtocolResponse
from apiharness.exceptions import HarnessError
from apiharness.steps.assertions import (
    as_number,
    expect_contains,
    expect_equal,
    expect_less_than,
    expect_not_contains,
    expect_not_empty,
    expect_one_of,
    expect_size,
    json_path_value,
    parse_json_body,
    require_response,
    stringify,
)

logger = logging.getLogger(__name__)

_TABLE_HEADINGS = ("name", "value")


def scenario_context(context: Context) -> ScenarioContext:
    """Return the scenario context installed by the before-scenario hook."""
    api = getattr(context, "api", None)
    if api is None:
        raise HarnessError(
            "No scenario context at context.api; import apiharness.hooks in features/environment.py"
        )
    return api


def last_response(context: Context) -> ProtocolResponse:
    return require_response(scenario_context(context).last_response())


def default_content_type(request: ProtocolRequest) -> None:
    if request.content_type is None:
        request.with_content_type(DEFAULT_CONTENT_TYPE)


def send_request(context: Context, method: str, endpoint: str, body: str | None = None) -> ProtocolResponse:
    """Finalise method and endpoint on the current request and execute it over REST."""
    api = scenario_context(context)
    request = api.current_request().with_method(method).with_endpoint(endpoint)
    if body is not None:
        request.with_body(body)
        default_content_type(request)

    base_url = api.get(BASE_URL_OVERRIDE_KEY)
    if base_url:
        request.with_extra(BASE_URL_EXTRA, base_url)

    return api.execute_rest()


def table_pairs(table: Table) -> list[tuple[str, str]]:
    """Read a two-column behave table as ordered ``(name, value)`` pairs.

    A heading row of ``name | value`` is skipped; any other heading row is
    the first pair.
    """
    pairs: list[tuple[str, str]] = []
    headings = [cell.strip() for cell in table.headings]
    if tuple(h.lower() for h in headings) != _TABLE_HEADINGS:
        if len(headings) != 2:
            raise ValueError(f"Expected a two-column table, got columns {headings}")
        pairs.append((headings[0], headings[1]))
    for row in table.rows:
        cells = list(row.cells)
        if len(cells) != 2:
            raise ValueError(f"Expected two cells per row, got {cells}")
        pairs.append((cells[0].strip(), cells[1].strip()))
    return pairs


# Setup


@step('the REST API base URL is "{base_url}"')
def step_set_base_url(context: Context, base_url: str) -> None:
    scenario_context(context).set(BASE_URL_OVERRIDE_KEY, base_url)
    logger.info("Base URL overridden to: %s", base_url)


@step('I set header "{name}" to "{value}"')
def step_set_header(context: Context, name: str, value: str) -> None:
    scenario_context(context).current_request().with_header(name, value)


@step("I set the following headers:")
def step_set_headers(context: Context) -> None:
    if context.table is None:
        raise ValueError("Step 'I set the following headers:' requires a table")
    scenario_context(context).current_request().with_headers(table_pairs(context.table))


@step('I set query parameter "{name}" to "{value}"')
def step_set_query_param(context: Context, name: str, value: str) -> None:
    scenario_context(context).current_request().with_query_param(name, value)


@step('I set path parameter "{name}" to "{value}"')
def step_set_path_param(context: Context, name: str, value: str) -> None:
    scenario_context(context).current_request().with_path_param(name, value)


@step('I set request content type to "{content_type}"')
def step_set_content_type(context: Context, content_type: str) -> None:
    scenario_context(context).current_request().with_content_type(content_type)


@step('I set bearer token "{token}"')
def step_set_bearer_token(context: Context, token: str) -> None:
    scenario_context(context).current_request().with_auth_token(token)


@step('I set basic auth with username "{username}" and password "{password}"')
def step_set_basic_auth(context: Context, username: str, password: str) -> None:
    scenario_context(context).current_request().with_basic_auth(username, password)


@step("I set the request body to:")
def step_set_request_body(context: Context) -> None:
    request = scenario_context(context).current_request().with_body(context.text or "")
    default_content_type(request)


@step('I set the request body from file "{path}"')
def step_set_request_body_from_file(context: Context, path: str) -> None:
    api = scenario_context(context)
    body_file = api.config.resource_root / path
    if not body_file.is_file():
        raise FileNotFoundError(f"Request body file not found: {body_file}")
    request = api.current_request().with_body(body_file.read_text(encoding="utf-8"))
    default_content_type(request)


@step('I store "{value}" as "{key}"')
def step_store_value(context: Context, value: str, key: str) -> None:
    scenario_context(context).set(key, value)


# Execute


@step('I send a {method:w} request to "{endpoint}"')
def step_send_request(context: Context, method: str, endpoint: str) -> None:
    send_request(context, method, endpoint)


@step('I send a {method:w} request to "{endpoint}" with body:')
def step_send_request_with_body(context: Context, method: str, endpoint: str) -> None:
    send_request(context, method, endpoint, body=context.text or "")


# Assertions


@step("the response status code should be {expected:d}")
def step_status_code(context: Context, expected: int) -> None:
    expect_equal("HTTP status code", expected, last_response(context).status_code)


@step('the response status code should be one of "{codes}"')
def step_status_code_one_of(context: Context, codes: str) -> None:
    try:
        expected = [int(code.strip()) for code in codes.split(",") if code.strip()]
    except ValueError:
        raise ValueError(f"Status codes must be comma-separated integers: {codes!r}") from None
    expect_one_of("HTTP status code", expected, last_response(context).status_code)


@step('the response body should contain "{text}"')
def step_body_contains(context: Context, text: str) -> None:
    expect_contains("Response body", text, last_response(context).body)


@step('the response body should not contain "{text}"')
def step_body_not_contains(context: Context, text: str) -> None:
    expect_not_contains("Response body", text, last_response(context).body)


@step('the response header "{name}" should be "{value}"')
def step_header_equals(context: Context, name: str, value: str) -> None:
    expect_equal(f"Response header '{name}'", value, last_response(context).get_header(name))


@step('the response header "{name}" should contain "{text}"')
def step_header_contains(context: Context, name: str, text: str) -> None:
    expect_contains(f"Response header '{name}'", text, last_response(context).get_header(name))


@step("the response time should be less than {max_ms:d} ms")
def step_response_time(context: Context, max_ms: int) -> None:
    expect_less_than("Response time in milliseconds", max_ms, last_response(context).response_time_ms)


@step('the response content type should be "{content_type}"')
def step_content_type(context: Context, content_type: str) -> None:
    expect_contains(
        "Response content type",
        content_type,
        last_response(context).content_type,
        ignore_case=True,
    )


@step('the JSON path "{path}" should equal "{expected}"')
def step_json_path_equals(context: Context, path: str, expected: str) -> None:
    actual = json_path_value(last_response(context), path)
    expect_equal(f"JSON path '{path}'", expected, stringify(actual))


@step('the JSON path "{path}" should equal {expected:d}')
def step_json_path_equals_number(context: Context, path: str, expected: int) -> None:
    subject = f"JSON path '{path}'"
    actual = as_number(subject, json_path_value(last_response(context), path))
    expect_equal(subject, expected, actual)


@step('the JSON path "{path}" should not be empty')
def step_json_path_not_empty(context: Context, path: str) -> None:
    expect_not_empty(f"JSON path '{path}'", json_path_value(last_response(context), path))


@step('the JSON path "{path}" should have {count:d} items')
def step_json_path_size(context: Context, path: str, count: int) -> None:
    expect_size(f"JSON path '{path}' array size", count, json_path_value(last_response(context), path))


@step('the JSON path "{path}" should contain "{text}"')
def step_json_path_contains(context: Context, path: str, text: str) -> None:
    actual = json_path_value(last_response(context), path)
    expect_contains(f"JSON path '{path}'", text, stringify(actual))


@step('I store the JSON path "{path}" as "{key}"')
def step_store_json_path(context: Context, path: str, key: str) -> None:
    value = json_path_value(last_response(context), path)
    scenario_context(context).set(key, value)
    logger.info("Stored JSON path '%s' = '%s' as '%s'", path, stringify(value), key)


@step('I store the response header "{name}" as "{key}"')
def step_store_header(context: Context, name: str, key: str) -> None:
    value = last_response(context).get_header(name)
    scenario_context(context).set(key, value)
    logger.info("Stored header '%s' = '%s' as '%s'", name, value, key)


@step("the response body should be valid JSON")
def step_body_is_json(context: Context) -> None:
    parse_json_body(last_response(context))


@step("I print the response body")
def step_print_body(context: Context) -> None:
    logger.info("Response body:\n%s", last_response(context).body)
