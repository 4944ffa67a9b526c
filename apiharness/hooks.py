"""Behave lifecycle hooks for the API test harness.

Re-export these from a project's ``features/environment.py``::

    from apiharness.hooks import after_all, after_scenario, after_step, before_all, before_scenario

``before_all`` builds the process-wide configuration, client registry and
event recorder; every scenario then gets a fresh ``ScenarioContext`` at
``context.api``. Shared protocol clients are closed once, in ``after_all``.
"""

from __future__ import annotations

import logging

from behave.model import Scenario, Step
from behave.runner import Context

from apiharness.constants import (
    EVENTS_FILE_USERDATA_KEY,
    FAILURE_ATTACHMENT_NAME,
    LOG_LEVEL_USERDATA_KEY,
)
from apiharness.core.config import ConfigResolver
from apiharness.core.context import ScenarioContext
from apiharness.core.reporting import (
    Attachment,
    EventRecorder,
    ScenarioStatus,
    scenario_status,
)
from apiharness.logging import bind_scenario, configure_logging, unbind_scenario
from apiharness.protocols.registry import ClientRegistry

logger = logging.getLogger(__name__)


def userdata_of(context: Context) -> dict[str, str]:
    """Return behave ``-D key=value`` user data as a plain dict."""
    config = getattr(context, "config", None)
    userdata = getattr(config, "userdata", None)
    return dict(userdata) if userdata else {}


def before_all(context: Context) -> None:
    """Create process-wide harness state.

    User data given with ``-D key=value`` acts as process-level config
    overrides, so ``-D rest.base-url=http://svc`` beats every other source.
    """
    userdata = userdata_of(context)
    configure_logging(userdata.get(LOG_LEVEL_USERDATA_KEY))

    context.harness_config = ConfigResolver(overrides=userdata)
    context.client_registry = ClientRegistry(context.harness_config)
    context.event_recorder = EventRecorder()


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Install a fresh scenario context and bind the logging context."""
    context.api = ScenarioContext(context.harness_config, context.client_registry)
    context.log_binding = bind_scenario(scenario.name)

    tags = list(scenario.effective_tags)
    logger.info("========== SCENARIO START: %s ==========", scenario.name)
    logger.info("Tags: %s", tags)
    context.event_recorder.scenario_started(scenario.name, tags)


def after_step(context: Context, step: Step) -> None:
    error = getattr(step, "error_message", None)
    context.event_recorder.step_finished(
        context.scenario.name,
        f"{step.keyword} {step.name}",
        scenario_status(step.status),
        error,
    )


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Attach the last response on failure, record the outcome and clean up.

    The scenario context is always cleaned up, even if reporting fails.
    """
    api: ScenarioContext | None = getattr(context, "api", None)
    status = scenario_status(scenario.status)
    try:
        if status is ScenarioStatus.FAILED and api is not None:
            attach_last_response(context, scenario, api)

        logger.info(
            "========== SCENARIO END: %s - %s ==========", scenario.name, status.value
        )
        context.event_recorder.scenario_finished(scenario.name, status)
    finally:
        if api is not None:
            api.cleanup()
        unbind_scenario(getattr(context, "log_binding", None))


def attach_last_response(context: Context, scenario: Scenario, api: ScenarioContext) -> None:
    """Attach the last response body to the scenario report as plain text."""
    response = api.last_response()
    if response is None or response.body is None:
        return

    attachment = Attachment(
        mime_type="text/plain",
        payload=response.body.encode("utf-8"),
        name=FAILURE_ATTACHMENT_NAME,
    )
    context.event_recorder.attach(scenario.name, attachment)

    runner_attach = getattr(context, "attach", None)
    if callable(runner_attach):
        runner_attach(attachment.mime_type, attachment.payload)


def after_all(context: Context) -> None:
    """Close shared protocol clients and write the event stream if requested."""
    registry: ClientRegistry | None = getattr(context, "client_registry", None)
    if registry is not None:
        registry.close_all()

    recorder: EventRecorder | None = getattr(context, "event_recorder", None)
    events_file = userdata_of(context).get(EVENTS_FILE_USERDATA_KEY)
    if recorder is not None and events_file:
        recorder.write_jsonl(events_file)
