"""Unit tests for RestClient against the stub HTTP server."""

import base64
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from apiharness.core.config import ConfigResolver
from apiharness.core.messages import ProtocolRequest
from apiharness.exceptions import (
    ConfigParseError,
    HarnessError,
    RequestShapeError,
    TransportError,
    UnsupportedMethodError,
)
from apiharness.protocols.rest.client import (
    RestClient,
    charset_of,
    decode_body,
    join_url,
    substitute_path_params,
)
from tests.support.http_server import CannedResponse, StubServer


@pytest.fixture
def client(stub_config: ConfigResolver):
    client = RestClient()
    client.init(stub_config)
    yield client
    client.close()


class TestUrlHelpers:
    def test_path_params_are_percent_encoded(self) -> None:
        resolved = substitute_path_params("/a/{x}/b/{y}", {"x": "1", "y": "2/3"})

        assert resolved == "/a/1/b/2%2F3"

    def test_unused_path_params_are_ignored(self) -> None:
        assert substitute_path_params("/orders", {"id": "1"}) == "/orders"

    def test_unresolved_placeholder_raises(self) -> None:
        with pytest.raises(RequestShapeError, match="id"):
            substitute_path_params("/orders/{id}", {})

    @pytest.mark.parametrize(
        ("base", "endpoint", "expected"),
        [
            ("http://svc.test", "/users", "http://svc.test/users"),
            ("http://svc.test/", "/users", "http://svc.test/users"),
            ("http://svc.test/api", "users", "http://svc.test/api/users"),
            ("http://svc.test", "https://other.test/x", "https://other.test/x"),
        ],
    )
    def test_join_url(self, base: str, endpoint: str, expected: str) -> None:
        assert join_url(base, endpoint) == expected

    def test_charset_of(self) -> None:
        assert charset_of("text/plain; charset=ISO-8859-1") == "ISO-8859-1"
        assert charset_of("application/json") is None

    def test_decode_body_uses_declared_charset(self) -> None:
        assert decode_body("café".encode("latin-1"), "text/plain; charset=latin-1") == "café"

    def test_decode_body_defaults_to_utf8(self) -> None:
        assert decode_body("café".encode("utf-8"), "") == "café"


class TestRestClientInit:
    def test_reads_configuration(self, tmp_path: Path) -> None:
        config = ConfigResolver(
            overrides={
                "rest.base-url": "http://svc.test",
                "rest.relaxed-https": "true",
                "rest.timeout-ms": "1500",
            },
            resource_root=tmp_path,
        )
        client = RestClient()

        with patch("apiharness.protocols.rest.client.urllib3.disable_warnings") as disable:
            client.init(config)

        assert client.base_url == "http://svc.test"
        assert client.relaxed_https is True
        assert client.timeout_ms == 1500
        assert client.session.verify is False
        disable.assert_called_once()
        client.close()

    def test_defaults(self, tmp_path: Path) -> None:
        client = RestClient()
        client.init(ConfigResolver(resource_root=tmp_path))

        assert client.base_url == "http://localhost:8080"
        assert client.timeout_ms == 30000
        assert client.session.verify is True
        client.close()

    @pytest.mark.parametrize("timeout", ["0", "-5"])
    def test_non_positive_timeout_is_rejected(self, tmp_path: Path, timeout: str) -> None:
        config = ConfigResolver(overrides={"rest.timeout-ms": timeout}, resource_root=tmp_path)
        client = RestClient()

        with pytest.raises(ConfigParseError, match="rest.timeout-ms") as excinfo:
            client.init(config)

        assert excinfo.value.value == timeout
        assert client.session is None

    def test_execute_before_init_raises(self) -> None:
        with pytest.raises(HarnessError):
            RestClient().execute(ProtocolRequest(method="GET", endpoint="/"))

    def test_protocol_name(self) -> None:
        assert RestClient().protocol_name() == "REST"


class TestRestClientExecute:
    def test_get_maps_status_headers_and_body(self, client: RestClient, stub: StubServer) -> None:
        stub.add_route(
            "GET",
            "/users/42",
            CannedResponse.json({"id": 42, "name": "Ada"}, headers=[("X-Trace", "t-1")]),
        )

        response = client.execute(ProtocolRequest(method="GET", endpoint="/users/42"))

        assert response.status_code == 200
        assert response.status_line.endswith("200 OK")
        assert json.loads(response.body) == {"id": 42, "name": "Ada"}
        assert response.content_type == "application/json"
        assert response.get_header("x-trace") == "t-1"
        assert response.response_time_ms >= 0
        assert isinstance(response.extras["raw_response"], requests.Response)

    def test_post_sends_body_bearer_and_content_type(
        self, client: RestClient, stub: StubServer
    ) -> None:
        stub.add_route("POST", "/users", CannedResponse(status=201, headers=[("Location", "/users/7")]))
        request = (
            ProtocolRequest(method="POST", endpoint="/users")
            .with_auth_token("abc")
            .with_content_type("application/json")
            .with_body('{"name":"Bo"}')
        )

        response = client.execute(request)

        sent = stub.last_request
        assert response.status_code == 201
        assert response.get_header("location") == "/users/7"
        assert sent.header("Authorization") == "Bearer abc"
        assert sent.header("Content-Type") == "application/json"
        assert sent.text == '{"name":"Bo"}'

    def test_path_params_are_substituted(self, client: RestClient, stub: StubServer) -> None:
        stub.add_route("GET", "/orders/99", CannedResponse(body="ok"))
        request = ProtocolRequest(method="GET", endpoint="/orders/{id}").with_path_param("id", "99")

        response = client.execute(request)

        assert response.status_code == 200
        assert stub.last_request.path == "/orders/99"

    def test_encoded_path_param_reaches_server(self, client: RestClient, stub: StubServer) -> None:
        request = (
            ProtocolRequest(method="GET", endpoint="/a/{x}/b/{y}")
            .with_path_param("x", "1")
            .with_path_param("y", "2/3")
        )

        client.execute(request)

        assert stub.last_request.path == "/a/1/b/2%2F3"

    def test_query_params_keep_order(self, client: RestClient, stub: StubServer) -> None:
        request = (
            ProtocolRequest(method="GET", endpoint="/search")
            .with_query_param("q", "a b")
            .with_query_param("page", "2")
        )

        client.execute(request)

        assert stub.last_request.query == [("q", "a b"), ("page", "2")]

    def test_method_is_case_insensitive(self, client: RestClient, stub: StubServer) -> None:
        stub.add_route("DELETE", "/users/1", CannedResponse(status=204))

        response = client.execute(ProtocolRequest(method="delete", endpoint="/users/1"))

        assert response.status_code == 204
        assert stub.last_request.method == "DELETE"

    def test_content_type_replaces_header_case_insensitively(
        self, client: RestClient, stub: StubServer
    ) -> None:
        request = (
            ProtocolRequest(method="POST", endpoint="/x")
            .with_header("content-type", "text/plain")
            .with_content_type("application/xml")
            .with_body("<a/>")
        )

        client.execute(request)

        content_types = [v for k, v in stub.last_request.headers if k.lower() == "content-type"]
        assert content_types == ["application/xml"]

    def test_basic_auth(self, client: RestClient, stub: StubServer) -> None:
        request = ProtocolRequest(method="GET", endpoint="/secure").with_basic_auth("ada", "pw")

        client.execute(request)

        expected = "Basic " + base64.b64encode(b"ada:pw").decode("ascii")
        assert stub.last_request.header("Authorization") == expected

    def test_bearer_wins_over_basic_auth(self, client: RestClient, stub: StubServer) -> None:
        request = (
            ProtocolRequest(method="GET", endpoint="/secure")
            .with_basic_auth("ada", "pw")
            .with_auth_token("tok")
        )

        client.execute(request)

        assert stub.last_request.header("Authorization") == "Bearer tok"

    def test_base_url_extra_overrides_config(self, tmp_path: Path, stub: StubServer) -> None:
        config = ConfigResolver(
            overrides={"rest.base-url": "http://unused.invalid"}, resource_root=tmp_path
        )
        client = RestClient()
        client.init(config)
        request = ProtocolRequest(method="GET", endpoint="/ping").with_extra("base_url", stub.base_url)

        response = client.execute(request)

        assert response.status_code == 404
        assert stub.last_request.path == "/ping"
        client.close()

    def test_error_status_is_a_response_not_an_exception(
        self, client: RestClient, stub: StubServer
    ) -> None:
        stub.add_route("GET", "/boom", CannedResponse(status=500, body="failure"))

        response = client.execute(ProtocolRequest(method="GET", endpoint="/boom"))

        assert response.status_code == 500
        assert response.body == "failure"

    def test_duplicate_response_headers_are_kept(self, client: RestClient, stub: StubServer) -> None:
        stub.add_route(
            "GET",
            "/cookies",
            CannedResponse(headers=[("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")]),
        )

        response = client.execute(ProtocolRequest(method="GET", endpoint="/cookies"))

        cookies = [v for k, v in response.header_items if k.lower() == "set-cookie"]
        assert cookies == ["a=1", "b=2"]
        assert response.get_header("SET-COOKIE") == "a=1"


    def test_response_cookies_are_not_sent_on_later_requests(
        self, client: RestClient, stub: StubServer
    ) -> None:
        stub.add_route(
            "GET", "/login", CannedResponse(headers=[("Set-Cookie", "SESSION=alice; Path=/")])
        )
        stub.add_route("GET", "/me", CannedResponse())

        login = client.execute(ProtocolRequest(method="GET", endpoint="/login"))
        client.execute(ProtocolRequest(method="GET", endpoint="/me"))

        assert login.get_header("Set-Cookie") == "SESSION=alice; Path=/"
        assert stub.last_request.header("Cookie") is None
        assert len(client.session.cookies) == 0

    def test_explicit_cookie_header_is_still_sent(self, client: RestClient, stub: StubServer) -> None:
        stub.add_route("GET", "/me", CannedResponse())

        request = ProtocolRequest(method="GET", endpoint="/me").with_header("Cookie", "SESSION=bob")

        client.execute(request)

        assert stub.last_request.header("Cookie") == "SESSION=bob"


class TestRestClientFailures:
    @pytest.mark.parametrize("method", ["FOO", "TRACE", "CONNECT", "get2"])
    def test_unsupported_method_performs_no_io(self, client: RestClient, method: str) -> None:
        client.session = MagicMock(spec=requests.Session)

        with pytest.raises(UnsupportedMethodError):
            client.execute(ProtocolRequest(method=method, endpoint="/x"))

        client.session.request.assert_not_called()

    def test_missing_endpoint_raises(self, client: RestClient) -> None:
        with pytest.raises(RequestShapeError):
            client.execute(ProtocolRequest(method="GET"))

    def test_connection_failure_raises_transport_error(self, tmp_path: Path) -> None:
        config = ConfigResolver(
            overrides={"rest.base-url": "http://127.0.0.1:1", "rest.timeout-ms": "500"},
            resource_root=tmp_path,
        )
        client = RestClient()
        client.init(config)

        with pytest.raises(TransportError) as exc_info:
            client.execute(ProtocolRequest(method="GET", endpoint="/x"))

        assert exc_info.value.url == "http://127.0.0.1:1/x"
        client.close()

    def test_timeout_raises_transport_error(self, client: RestClient, stub: StubServer) -> None:
        stub.add_route("GET", "/slow", CannedResponse(delay_ms=500))
        request = ProtocolRequest(method="GET", endpoint="/slow").with_timeout_ms(100)

        with pytest.raises(TransportError):
            client.execute(request)

    def test_close_releases_session(self, client: RestClient) -> None:
        client.close()

        assert client.session is None
