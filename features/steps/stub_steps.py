"""Steps that inspect the stub server and the scenario data bag."""

from behave import step
from behave.runner import Context

from apiharness.steps.assertions import expect_equal
from apiharness.steps.rest_steps import scenario_context


def last_received(context: Context):
    received = context.stub.last_request
    if received is None:
        raise AssertionError("Stub server received no request")
    return received


@step('the server should have received header "{name}" with value "{value}"')
def step_received_header(context: Context, name: str, value: str) -> None:
    expect_equal(f"Received header '{name}'", value, last_received(context).header(name))


@step('the server should have received a {method:w} request for "{path}"')
def step_received_request(context: Context, method: str, path: str) -> None:
    received = last_received(context)
    expect_equal("Received method", method, received.method)
    expect_equal("Received path", path, received.path)


@step('the server should have received body "{body}"')
def step_received_body(context: Context, body: str) -> None:
    expect_equal("Received body", body, last_received(context).text)


@step('the server should have received query parameter "{name}" with value "{value}"')
def step_received_query(context: Context, name: str, value: str) -> None:
    received = dict(last_received(context).query)
    expect_equal(f"Received query parameter '{name}'", value, received.get(name))


@step('the REST API base URL points at the stub server under "{prefix}"')
def step_base_url_under_stub(context: Context, prefix: str) -> None:
    context.execute_steps(f'When the REST API base URL is "{context.stub.base_url}{prefix}"')


@step('the stored value "{key}" should be "{expected}"')
def step_stored_value(context: Context, key: str, expected: str) -> None:
    expect_equal(f"Stored value '{key}'", expected, scenario_context(context).get_string(key))
