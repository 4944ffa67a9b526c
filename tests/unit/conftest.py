"""Pytest configuration and fixtures for apiharness unit tests."""

import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import yaml

tests_root = Path(__file__).parent.parent.parent
if str(tests_root) not in sys.path:
    sys.path.insert(0, str(tests_root))

from apiharness.core.config import ConfigResolver  # noqa: E402
from apiharness.core.context import ScenarioContext  # noqa: E402
from apiharness.protocols.registry import ClientRegistry  # noqa: E402
from tests.support.http_server import StubServer  # noqa: E402

HARNESS_ENV_VARS = (
    "ENV",
    "APIHARNESS_RESOURCE_ROOT",
    "APIHARNESS_LOG_LEVEL",
    "REST_BASE_URL",
    "REST_RELAXED_HTTPS",
    "REST_TIMEOUT_MS",
)


@pytest.fixture(autouse=True)
def clean_harness_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove environment variables that would leak into config resolution."""
    for name in HARNESS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[dict[str, Any], str | None], Path]:
    """Return a helper writing ``config/application[-env].yml`` under tmp_path.

    Returns
    -------
    Callable[[dict[str, Any], str | None], Path]
        Function taking the document and an optional environment name
    """

    def _write(data: dict[str, Any], env: str | None = None) -> Path:
        config_dir = tmp_path / "config"
        config_dir.mkdir(exist_ok=True)
        name = f"application-{env}.yml" if env else "application.yml"
        path = config_dir / name
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


@pytest.fixture
def stub() -> Generator[StubServer, None, None]:
    """Start a stub HTTP server for the duration of one test.

    Yields
    ------
    StubServer
        Running server on an ephemeral localhost port
    """
    server = StubServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def stub_config(stub: StubServer, tmp_path: Path) -> ConfigResolver:
    """Config pointing the REST client at the stub server."""
    return ConfigResolver(
        overrides={"rest.base-url": stub.base_url, "rest.timeout-ms": "2000"},
        resource_root=tmp_path,
    )


@pytest.fixture
def registry(stub_config: ConfigResolver) -> Generator[ClientRegistry, None, None]:
    registry = ClientRegistry(stub_config)
    yield registry
    registry.close_all()


@pytest.fixture
def api(stub_config: ConfigResolver, registry: ClientRegistry) -> ScenarioContext:
    return ScenarioContext(stub_config, registry)
