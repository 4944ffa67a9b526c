"""Behave environment for the harness's own end-to-end suite.

Composes the library hooks with a stub HTTP server that stands in for the
service under test. The stub's URL becomes the ``rest.base-url`` override
unless one was given with ``-D``.
"""

import importlib.util
import logging
import sys
from pathlib import Path

from behave.model import Scenario
from behave.runner import Context

from apiharness import hooks

logger = logging.getLogger(__name__)

STUB_SERVER_PATH = Path(__file__).parent.parent / "tests" / "support" / "http_server.py"


def load_stub_module():
    spec = importlib.util.spec_from_file_location("apiharness_stub_server", STUB_SERVER_PATH)
    module = importlib.util.module_from_spec(spec)
    sys.modules["apiharness_stub_server"] = module
    spec.loader.exec_module(module)
    return module


def install_routes(stub, stub_module) -> None:
    canned = stub_module.CannedResponse
    stub.add_route("GET", "/users/42", canned.json({"id": 42, "name": "Ada", "roles": ["admin", "dev"]}))
    stub.add_route("POST", "/users", canned(status=201, headers=[("Location", "/users/7")]))
    stub.add_route("GET", "/v2/users/42", canned.json({"id": 42, "name": "Ada"}))
    stub.add_route("GET", "/orders/99", canned.json({"id": 99, "status": "shipped"}))
    stub.add_route("GET", "/slow", canned(body="ok", delay_ms=50))


def before_all(context: Context) -> None:
    stub_module = load_stub_module()
    context.stub = stub_module.StubServer()
    context.stub.start()
    install_routes(context.stub, stub_module)
    logger.debug("Stub server listening on %s", context.stub.base_url)

    context.config.userdata.setdefault("rest.base-url", context.stub.base_url)
    hooks.before_all(context)


def before_scenario(context: Context, scenario: Scenario) -> None:
    hooks.before_scenario(context, scenario)


def after_step(context: Context, step) -> None:
    hooks.after_step(context, step)


def after_scenario(context: Context, scenario: Scenario) -> None:
    hooks.after_scenario(context, scenario)


def after_all(context: Context) -> None:
    try:
        hooks.after_all(context)
    finally:
        context.stub.stop()
