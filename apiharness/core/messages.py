"""Protocol-agnostic request and response value objects.

``ProtocolRequest`` is a mutable builder filled in by steps; every ``with_*``
setter returns the request so calls can be chained. ``ProtocolResponse`` is
produced by a protocol client and never changed afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from apiharness.exceptions import RequestShapeError


@dataclass(repr=False)
class ProtocolRequest:
    """One outbound call under construction.

    Attributes
    ----------
    endpoint : str | None
        Path, URL suffix or absolute URL; may contain ``{name}`` placeholders
    method : str | None
        Method or action, interpreted per protocol
    headers : dict[str, str]
        Headers in insertion order, case preserved
    query_params : dict[str, str]
        Query parameters in insertion order
    path_params : dict[str, str]
        Values substituted into endpoint placeholders
    body : str | None
        Payload text (JSON, XML or Base64-encoded binary)
    content_type : str | None
        Content type of the payload
    timeout_ms : int
        Per-request timeout; 0 means the client default
    auth_token : str | None
        Bearer token; wins over basic auth when both are set
    basic_auth_user : str | None
        Basic auth username
    basic_auth_password : str | None
        Basic auth password
    extras : dict[str, Any]
        Protocol-specific extensions
    """

    endpoint: str | None = None
    method: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, str] = field(default_factory=dict)
    path_params: dict[str, str] = field(default_factory=dict)
    body: str | None = None
    content_type: str | None = None
    timeout_ms: int = 0
    auth_token: str | None = None
    basic_auth_user: str | None = None
    basic_auth_password: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    def with_endpoint(self, endpoint: str) -> ProtocolRequest:
        self.endpoint = endpoint
        return self

    def with_method(self, method: str) -> ProtocolRequest:
        self.method = method
        return self

    def with_header(self, name: str, value: str) -> ProtocolRequest:
        self.headers[name] = value
        return self

    def with_headers(self, headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> ProtocolRequest:
        items = headers.items() if isinstance(headers, Mapping) else headers
        for name, value in items:
            self.headers[name] = value
        return self

    def with_query_param(self, name: str, value: str) -> ProtocolRequest:
        self.query_params[name] = value
        return self

    def with_path_param(self, name: str, value: str) -> ProtocolRequest:
        self.path_params[name] = value
        return self

    def with_body(self, body: str | None) -> ProtocolRequest:
        self.body = body
        return self

    def with_content_type(self, content_type: str) -> ProtocolRequest:
        self.content_type = content_type
        return self

    def with_timeout_ms(self, timeout_ms: int) -> ProtocolRequest:
        if timeout_ms < 0:
            raise RequestShapeError(f"Timeout must not be negative: {timeout_ms}")
        self.timeout_ms = timeout_ms
        return self

    def with_auth_token(self, token: str) -> ProtocolRequest:
        self.auth_token = token
        return self

    def with_basic_auth(self, user: str, password: str) -> ProtocolRequest:
        self.basic_auth_user = user
        self.basic_auth_password = password
        return self

    def with_extra(self, key: str, value: Any) -> ProtocolRequest:
        self.extras[key] = value
        return self

    def require_target(self) -> None:
        """Check that the request names a method and an endpoint.

        Raises
        ------
        RequestShapeError
            If method or endpoint is missing or blank
        """
        if not self.method or not self.method.strip():
            raise RequestShapeError("Request method is not set")
        if not self.endpoint or not self.endpoint.strip():
            raise RequestShapeError("Request endpoint is not set")

    def __repr__(self) -> str:
        return (
            f"ProtocolRequest(method={self.method!r}, endpoint={self.endpoint!r}, "
            f"content_type={self.content_type!r}, body_length={len(self.body or '')})"
        )


@dataclass(frozen=True, repr=False)
class ProtocolResponse:
    """Result of one call.

    Headers are kept as ordered ``(name, value)`` pairs so duplicates the
    server sent stay separate; ``get_header`` returns the first match
    regardless of case.

    Attributes
    ----------
    status_code : int
        Status code, or -1 when the protocol has none
    status_line : str
        Status line or reason phrase
    header_items : tuple[tuple[str, str], ...]
        Headers in server order
    body : str
        Decoded payload
    response_time_ms : int
        Wall-clock duration of the call
    content_type : str
        Content type reported by the server
    extras : Mapping[str, Any]
        Protocol-specific data, e.g. the raw transport response
    """

    status_code: int = -1
    status_line: str = ""
    header_items: tuple[tuple[str, str], ...] = ()
    body: str = ""
    response_time_ms: int = 0
    content_type: str = ""
    extras: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "header_items", tuple(
            (str(name), str(value)) for name, value in self.header_items
        ))
        object.__setattr__(self, "extras", MappingProxyType(dict(self.extras)))

    @property
    def headers(self) -> Mapping[str, str]:
        """Read-only mapping of header names to their first value."""
        first: dict[str, str] = {}
        for name, value in self.header_items:
            first.setdefault(name, value)
        return MappingProxyType(first)

    def get_header(self, name: str) -> str | None:
        """Return the first header value whose name matches case-insensitively."""
        wanted = name.lower()
        for header_name, value in self.header_items:
            if header_name.lower() == wanted:
                return value
        return None

    def __repr__(self) -> str:
        return (
            f"ProtocolResponse(status_code={self.status_code}, "
            f"content_type={self.content_type!r}, body_length={len(self.body)}, "
            f"response_time_ms={self.response_time_ms})"
        )
