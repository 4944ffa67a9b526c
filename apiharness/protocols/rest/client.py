"""REST/HTTP protocol client built on requests.

Translates a ``ProtocolRequest`` into one HTTP call on a pooled
``requests.Session`` and maps the result back to a ``ProtocolResponse``.
The client never retries; retry policy belongs to the caller.
"""

from __future__ import annotations

import http.cookiejar
import logging
import re
import time
from urllib.parse import quote, urlsplit

import requests
import urllib3
from requests.auth import HTTPBasicAuth

from apiharness.constants import (
    BASE_URL_EXTRA,
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_MS,
    HTTP_METHODS,
    RAW_RESPONSE_EXTRA,
    REST_PROTOCOL,
)
from apiharness.core.config import ConfigResolver
from apiharness.core.interfaces import ProtocolClient
from apiharness.core.messages import ProtocolRequest, ProtocolResponse
from apiharness.exceptions import (
    ConfigParseError,
    HarnessError,
    RequestShapeError,
    TransportError,
    UnsupportedMethodError,
)

logger = logging.getLogger(__name__)

_PLACEHOLDER_PATTERN = re.compile(r"\{([^{}]+)\}")
_CHARSET_PATTERN = re.compile(r"charset\s*=\s*\"?([^\s;\"]+)", re.IGNORECASE)


def is_absolute_url(endpoint: str) -> bool:
    parts = urlsplit(endpoint)
    return bool(parts.scheme and parts.netloc)


def substitute_path_params(endpoint: str, path_params: dict[str, str]) -> str:
    """Replace ``{name}`` placeholders with percent-encoded path parameters.

    Parameters
    ----------
    endpoint : str
        Endpoint template such as ``/users/{id}``
    path_params : dict[str, str]
        Values keyed by placeholder name; unused entries are ignored

    Returns
    -------
    str
        Endpoint with every placeholder replaced

    Raises
    ------
    RequestShapeError
        If a placeholder has no matching path parameter
    """
    missing: list[str] = []

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in path_params:
            missing.append(name)
            return match.group(0)
        return quote(str(path_params[name]), safe="")

    resolved = _PLACEHOLDER_PATTERN.sub(_replace, endpoint)
    if missing:
        raise RequestShapeError(
            f"Unresolved path placeholders {missing} in endpoint '{endpoint}'"
        )
    return resolved


def join_url(base_url: str, endpoint: str) -> str:
    """Join an endpoint onto a base URL unless the endpoint is already absolute."""
    if is_absolute_url(endpoint):
        return endpoint
    if not endpoint.startswith("/"):
        endpoint = f"/{endpoint}"
    return f"{base_url.rstrip('/')}{endpoint}"


def charset_of(content_type: str) -> str | None:
    match = _CHARSET_PATTERN.search(content_type or "")
    return match.group(1) if match else None


def decode_body(content: bytes, content_type: str) -> str:
    """Decode a response payload using its declared charset, else UTF-8."""
    encoding = charset_of(content_type) or "utf-8"
    try:
        return content.decode(encoding, errors="replace")
    except LookupError:
        logger.debug("Unknown response charset %s, decoding as UTF-8", encoding)
        return content.decode("utf-8", errors="replace")


def status_line_of(response: requests.Response) -> str:
    version = getattr(response.raw, "version", None)
    protocol = {10: "HTTP/1.0", 11: "HTTP/1.1", 20: "HTTP/2"}.get(version, "HTTP/1.1")
    return f"{protocol} {response.status_code} {response.reason or ''}".rstrip()


def header_items_of(response: requests.Response) -> list[tuple[str, str]]:
    """Return response headers in server order, duplicates kept as separate pairs."""
    raw_headers = getattr(response.raw, "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "items"):
        return [(str(name), str(value)) for name, value in raw_headers.items()]
    return [(str(name), str(value)) for name, value in response.headers.items()]


class RestClient(ProtocolClient):
    """REST/HTTP protocol client.

    Reads ``rest.base-url``, ``rest.relaxed-https`` and ``rest.timeout-ms``
    at ``init``. A request's ``base_url`` extra takes precedence over the
    configured base URL, and a positive ``timeout_ms`` over the configured
    timeout.

    Attributes
    ----------
    base_url : str
        Base URL joined with relative endpoints
    relaxed_https : bool
        Whether certificate and hostname verification is disabled
    timeout_ms : int
        Default connect and read timeout
    session : requests.Session | None
        Pooled session, created at ``init`` and closed at ``close``
    """

    def __init__(self) -> None:
        self.base_url = DEFAULT_BASE_URL
        self.relaxed_https = False
        self.timeout_ms = DEFAULT_TIMEOUT_MS
        self.session: requests.Session | None = None

    def init(self, config: ConfigResolver) -> None:
        self.base_url = config.get_string("rest.base-url", DEFAULT_BASE_URL)
        self.relaxed_https = config.get_boolean("rest.relaxed-https", False)
        self.timeout_ms = config.get_int("rest.timeout-ms", DEFAULT_TIMEOUT_MS)
        if self.timeout_ms <= 0:
            raise ConfigParseError("rest.timeout-ms", str(self.timeout_ms), "positive int")

        session = requests.Session()
        session.verify = not self.relaxed_https
        # The session outlives scenarios, so server cookies must never be stored.
        session.cookies.set_policy(http.cookiejar.DefaultCookiePolicy(allowed_domains=[]))
        if self.relaxed_https:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        self.session = session

        logger.info(
            "REST client initialized - baseUrl=%s, relaxedHttps=%s, timeout=%dms",
            self.base_url,
            self.relaxed_https,
            self.timeout_ms,
        )

    def protocol_name(self) -> str:
        return REST_PROTOCOL

    def execute(self, request: ProtocolRequest) -> ProtocolResponse:
        """Send the request and map the HTTP response.

        Parameters
        ----------
        request : ProtocolRequest
            Request with at least method and endpoint set

        Returns
        -------
        ProtocolResponse
            Status, headers, decoded body, content type and timing

        Raises
        ------
        RequestShapeError
            If method or endpoint is missing, or a path placeholder is unresolved
        UnsupportedMethodError
            If the method is not a supported HTTP method
        TransportError
            If the call fails before a response arrives (DNS, connect, TLS, timeout)
        """
        if self.session is None:
            raise HarnessError("REST client used before init()")

        request.require_target()
        method = request.method.strip().upper()
        if method not in HTTP_METHODS:
            raise UnsupportedMethodError(request.method, HTTP_METHODS)

        base_url = request.extras.get(BASE_URL_EXTRA) or self.base_url
        url = join_url(base_url, substitute_path_params(request.endpoint, request.path_params))
        headers = self._build_headers(request)
        auth = None
        if request.auth_token is None and request.basic_auth_user is not None:
            auth = HTTPBasicAuth(request.basic_auth_user, request.basic_auth_password or "")

        timeout_ms = request.timeout_ms if request.timeout_ms > 0 else self.timeout_ms
        timeout = timeout_ms / 1000
        data = request.body.encode("utf-8") if request.body is not None else None

        logger.info("Executing REST request: %s %s", method, url)

        start = time.perf_counter()
        try:
            response = self.session.request(
                method,
                url,
                params=list(request.query_params.items()),
                headers=headers,
                data=data,
                auth=auth,
                timeout=(timeout, timeout),
                allow_redirects=True,
            )
        except requests.exceptions.RequestException as e:
            logger.error("REST request %s %s failed: %s", method, url, e)
            raise TransportError(method, url, e) from e
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        content_type = response.headers.get("Content-Type", "")
        result = ProtocolResponse(
            status_code=response.status_code,
            status_line=status_line_of(response),
            header_items=tuple(header_items_of(response)),
            body=decode_body(response.content, content_type),
            response_time_ms=elapsed_ms,
            content_type=content_type,
            extras={RAW_RESPONSE_EXTRA: response},
        )

        logger.info("REST response: status=%d, time=%dms", result.status_code, elapsed_ms)
        return result

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None
        logger.info("REST client closed")

    @staticmethod
    def _build_headers(request: ProtocolRequest) -> dict[str, str]:
        headers = dict(request.headers)

        if request.content_type is not None:
            existing = next(
                (name for name in headers if name.lower() == "content-type"), None
            )
            headers[existing or "Content-Type"] = request.content_type

        if request.auth_token is not None:
            existing = next(
                (name for name in headers if name.lower() == "authorization"), None
            )
            headers[existing or "Authorization"] = f"Bearer {request.auth_token}"

        return headers
