"""Unit tests for ClientRegistry."""

import threading
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from apiharness.core.config import ConfigResolver
from apiharness.core.interfaces import ProtocolClient
from apiharness.core.messages import ProtocolRequest, ProtocolResponse
from apiharness.exceptions import ClientInitError, ConfigParseError, UnknownProtocolError
from apiharness.protocols.registry import ClientRegistry, load_factory
from apiharness.protocols.rest import RestClient


class CountingClient(ProtocolClient):
    init_calls = 0
    init_delay = 0.0
    lock = threading.Lock()

    def __init__(self) -> None:
        self.closed = False

    def init(self, config: ConfigResolver) -> None:
        time.sleep(self.init_delay)
        with CountingClient.lock:
            CountingClient.init_calls += 1

    def execute(self, request: ProtocolRequest) -> ProtocolResponse:
        return ProtocolResponse(status_code=200, body=request.endpoint or "")

    def protocol_name(self) -> str:
        return "COUNT"

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def config(tmp_path: Path) -> ConfigResolver:
    return ConfigResolver(resource_root=tmp_path)


@pytest.fixture(autouse=True)
def reset_counting_client() -> None:
    CountingClient.init_calls = 0
    CountingClient.init_delay = 0.0


class TestClientRegistryLookup:
    def test_builtin_rest_client_is_discovered(self, config: ConfigResolver) -> None:
        registry = ClientRegistry(config)

        assert "REST" in registry.registered_protocols()
        assert isinstance(registry.rest(), RestClient)
        registry.close_all()

    def test_lookup_is_case_insensitive(self, config: ConfigResolver) -> None:
        registry = ClientRegistry(config, discover=False)
        registry.register("count", CountingClient)

        assert registry.get_client("COUNT") is registry.get_client("Count")

    def test_unknown_protocol_lists_available(self, config: ConfigResolver) -> None:
        registry = ClientRegistry(config, discover=False)
        registry.register("COUNT", CountingClient)

        with pytest.raises(UnknownProtocolError) as exc_info:
            registry.get_client("MQTT")

        assert "MQTT" in str(exc_info.value)
        assert exc_info.value.available == ["COUNT"]

    def test_later_registration_wins(self, config: ConfigResolver) -> None:
        registry = ClientRegistry(config, discover=False)
        first = MagicMock(return_value=MagicMock(spec=ProtocolClient))
        registry.register("X", first)
        registry.register("X", CountingClient)

        assert isinstance(registry.get_client("X"), CountingClient)
        first.assert_not_called()


class TestClientRegistryInitialisation:
    def test_concurrent_get_client_initialises_once(self, config: ConfigResolver) -> None:
        registry = ClientRegistry(config, discover=False)
        registry.register("COUNT", CountingClient)
        CountingClient.init_delay = 0.05

        barrier = threading.Barrier(8)
        results: list[ProtocolClient] = []
        results_lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            client = registry.get_client("COUNT")
            with results_lock:
                results.append(client)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert CountingClient.init_calls == 1
        assert len(results) == 8
        assert all(client is results[0] for client in results)
        assert registry.active_protocols() == ["COUNT"]

    def test_failed_init_is_not_cached(self, config: ConfigResolver) -> None:
        registry = ClientRegistry(config, discover=False)
        attempts = []

        class FlakyClient(CountingClient):
            def init(self, config: ConfigResolver) -> None:
                attempts.append(1)
                if len(attempts) == 1:
                    raise RuntimeError("backend unavailable")

        registry.register("FLAKY", FlakyClient)

        with pytest.raises(ClientInitError) as exc_info:
            registry.get_client("FLAKY")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert registry.active_protocols() == []
        assert isinstance(registry.get_client("FLAKY"), FlakyClient)
        assert len(attempts) == 2

    def test_factory_error_is_wrapped(self, config: ConfigResolver) -> None:
        registry = ClientRegistry(config, discover=False)
        registry.register("BROKEN", MagicMock(side_effect=ValueError("boom")))

        with pytest.raises(ClientInitError, match="boom"):
            registry.get_client("BROKEN")

    def test_invalid_rest_timeout_is_wrapped(self, tmp_path: Path) -> None:
        config = ConfigResolver(overrides={"rest.timeout-ms": "0"}, resource_root=tmp_path)
        registry = ClientRegistry(config)

        with pytest.raises(ClientInitError, match="rest.timeout-ms") as excinfo:
            registry.get_client("REST")

        assert isinstance(excinfo.value.__cause__, ConfigParseError)
        assert registry.active_protocols() == []


class TestClientRegistryShutdown:
    def test_close_all_closes_and_clears(self, config: ConfigResolver) -> None:
        registry = ClientRegistry(config, discover=False)
        registry.register("COUNT", CountingClient)
        client = registry.get_client("COUNT")

        registry.close_all()

        assert client.closed is True
        assert registry.active_protocols() == []

    def test_close_all_continues_after_error(self, config: ConfigResolver) -> None:
        registry = ClientRegistry(config, discover=False)
        failing = MagicMock(spec=ProtocolClient)
        failing.close.side_effect = RuntimeError("close failed")
        registry.register("AAA", lambda: failing)
        registry.register("COUNT", CountingClient)
        registry.get_client("AAA")
        healthy = registry.get_client("COUNT")

        registry.close_all()

        failing.close.assert_called_once()
        assert healthy.closed is True

    def test_client_is_recreated_after_close_all(self, config: ConfigResolver) -> None:
        registry = ClientRegistry(config, discover=False)
        registry.register("COUNT", CountingClient)
        first = registry.get_client("COUNT")

        registry.close_all()

        assert registry.get_client("COUNT") is not first
        assert CountingClient.init_calls == 2


class TestClientRegistryDiscovery:
    def test_entry_points_are_registered(self, config: ConfigResolver) -> None:
        entry_point = MagicMock()
        entry_point.name = "count"
        entry_point.load.return_value = CountingClient

        with patch(
            "apiharness.protocols.registry.entry_points", return_value=[entry_point]
        ) as mock_entry_points:
            registry = ClientRegistry(config)

        mock_entry_points.assert_called_once_with(group="apiharness.protocol_clients")
        assert registry.registered_protocols() == ["COUNT", "REST"]

    def test_broken_entry_point_is_skipped(self, config: ConfigResolver) -> None:
        broken = MagicMock()
        broken.name = "broken"
        broken.value = "missing.module:Client"
        broken.load.side_effect = ImportError("No module named 'missing'")

        with patch("apiharness.protocols.registry.entry_points", return_value=[broken]):
            registry = ClientRegistry(config)

        assert registry.registered_protocols() == ["REST"]


class TestLoadFactory:
    def test_loads_module_attribute(self) -> None:
        assert load_factory("apiharness.protocols.rest:RestClient") is RestClient

    def test_malformed_reference(self) -> None:
        with pytest.raises(ValueError):
            load_factory("apiharness.protocols.rest.RestClient")

    def test_missing_attribute(self) -> None:
        with pytest.raises(AttributeError):
            load_factory("apiharness.protocols.rest:NoSuchClient")
