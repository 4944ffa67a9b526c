"""Global constants for the API test harness.

Defaults here apply when neither the configuration documents nor any
override provide a value.
"""

DEFAULT_ENVIRONMENT = "dev"
"""Environment name used when neither the ``env`` override nor ``ENV`` is set."""

ENVIRONMENT_VARIABLE = "ENV"

ENVIRONMENT_OVERRIDE_KEY = "env"

RESOURCE_ROOT_VARIABLE = "APIHARNESS_RESOURCE_ROOT"
"""Environment variable naming the directory that holds ``config/`` and body files."""

LOG_LEVEL_VARIABLE = "APIHARNESS_LOG_LEVEL"

BASE_CONFIG_PATH = "config/application.yml"

ENV_CONFIG_TEMPLATE = "config/application-{env}.yml"

DEFAULT_BASE_URL = "http://localhost:8080"

DEFAULT_TIMEOUT_MS = 30_000
"""Connect and read timeout for REST calls in milliseconds.

Applied to both phases of the call, matching the per-request override.
"""

REST_PROTOCOL = "REST"

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

DEFAULT_CONTENT_TYPE = "application/json"
"""Content type assumed by the body steps when the scenario set none."""

BASE_URL_OVERRIDE_KEY = "rest.base-url.override"
"""Scenario bag key holding a per-scenario base URL override."""

BASE_URL_EXTRA = "base_url"
"""Request extra consulted by the REST client before its configured base URL."""

RAW_RESPONSE_EXTRA = "raw_response"

PROTOCOL_ENTRY_POINT_GROUP = "apiharness.protocol_clients"
"""Entry point group scanned for third-party protocol clients."""

INT_MIN = -(2**31)

INT_MAX = 2**31 - 1

FAILURE_ATTACHMENT_NAME = "Last Response Body"

EVENTS_FILE_USERDATA_KEY = "events_file"
"""Behave user data key naming the JSON Lines file for report events."""

LOG_LEVEL_USERDATA_KEY = "log_level"
