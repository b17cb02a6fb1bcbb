"""Thin HTTP abstraction for talking to the vRA platform API.

Wraps a ``requests.Session`` with the handful of behaviors every platform
call needs:

- Bearer token authentication, either a ready access token or a refresh
  token exchanged lazily via ``/iaas/api/login``
- TLS options: skip verification, custom CA bundle
- Proxy support
- ``redact_auth()`` helper for safe logging of headers

Non-2xx responses are *returned*, not raised; callers that need errors use
``APIResponse.raise_for_status()`` which raises ``ApiError``.
"""

import json
import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

LOGIN_PATH = "/iaas/api/login"


class ApiError(Exception):
    """A platform call answered with a non-2xx status.

    Attributes:
        status_code: HTTP status returned by the server.
        method:      HTTP method of the failed request.
        path:        Request path (without base URL).
        body:        Raw response body, useful for the server's error message.
    """

    def __init__(self, status_code: int, method: str = "", path: str = "", body: str = ""):
        self.status_code = status_code
        self.method = method
        self.path = path
        self.body = body
        super().__init__(str(self))

    def __str__(self):
        detail = _error_detail(self.body)
        msg = f"{self.method} {self.path} failed with status {self.status_code}".strip()
        return f"{msg}: {detail}" if detail else msg


class APIResponse:
    """Normalized HTTP response wrapper."""

    def __init__(self, status_code: int, headers: Dict[str, str], body: str,
                 method: str = "", path: str = ""):
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self.method = method
        self.path = path
        self._json = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Parse and cache the response body as JSON.

        A body that is not JSON (a login page served by a proxy, for
        instance) raises ``ApiError`` carrying the start of the body.
        """
        if self._json is None and self.body:
            try:
                self._json = json.loads(self.body)
            except ValueError:
                raise ApiError(self.status_code, self.method, self.path,
                               f"response body is not JSON: {self.body[:200]}") from None
        return self._json

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lower = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lower:
                return v
        return None

    def raise_for_status(self) -> "APIResponse":
        if not self.ok:
            raise ApiError(self.status_code, self.method, self.path, self.body)
        return self


class VRAClient:
    """HTTP client for the vRA platform API.

    Args:
        base_url:       Root URL of the platform (e.g. ``https://vra.example.com``)
        access_token:   Bearer token used as-is
        refresh_token:  API refresh token, exchanged for an access token on first use
        tls_no_verify:  Skip TLS certificate verification (for self-signed certs)
        timeout:        Per-request timeout in seconds
        proxy:          HTTP/HTTPS proxy URL
        ca_bundle:      Path to custom CA certificate bundle file
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        tls_no_verify: bool = False,
        timeout: int = 30,
        proxy: Optional[str] = None,
        ca_bundle: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.tls_no_verify = tls_no_verify
        self.timeout = timeout
        self.proxy = proxy
        self.ca_bundle = ca_bundle
        self.session = requests.Session()

    # -- Public API ----------------------------------------------------------

    def get(self, path: str, params: Optional[Dict[str, str]] = None) -> APIResponse:
        """Send a GET request."""
        return self._request("GET", path, params=params)

    def post(self, path: str, payload: Dict[str, Any],
             params: Optional[Dict[str, str]] = None) -> APIResponse:
        """Send a POST request with a JSON payload."""
        return self._request("POST", path, payload, params=params)

    def delete(self, path: str, params: Optional[Dict[str, str]] = None) -> APIResponse:
        """Send a DELETE request."""
        return self._request("DELETE", path, params=params)

    def login(self) -> str:
        """Exchange the refresh token for an access token and store it."""
        if not self.refresh_token:
            raise ValueError("login requires a refresh token")
        resp = self._send("POST", LOGIN_PATH, {"refreshToken": self.refresh_token},
                          headers=self._base_headers())
        resp.raise_for_status()
        self.access_token = (resp.json() or {}).get("token")
        if not self.access_token:
            raise ApiError(resp.status_code, "POST", LOGIN_PATH, "login response has no token")
        logger.debug("obtained access token from %s", LOGIN_PATH)
        return self.access_token

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    # -- Internals -----------------------------------------------------------

    def _base_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _build_headers(self) -> Dict[str, str]:
        """Build the default request headers with auth credentials."""
        if not self.access_token and self.refresh_token:
            self.login()
        headers = self._base_headers()
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> APIResponse:
        return self._send(method, path, payload, headers=self._build_headers(), params=params)

    def _send(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]],
        headers: Dict[str, str],
        params: Optional[Dict[str, str]] = None,
    ) -> APIResponse:
        url = f"{self.base_url}{path}"
        kwargs: Dict[str, Any] = {
            "headers": headers,
            "timeout": self.timeout,
        }
        if self.ca_bundle:
            kwargs["verify"] = self.ca_bundle
        elif self.tls_no_verify:
            kwargs["verify"] = False
        else:
            kwargs["verify"] = True

        if self.proxy:
            kwargs["proxies"] = {"http": self.proxy, "https": self.proxy}
        if params:
            kwargs["params"] = params
        if payload is not None:
            kwargs["json"] = payload

        logger.debug("%s %s params=%s headers=%s", method, url, params, redact_auth(headers))
        resp = self.session.request(method, url, **kwargs)
        logger.debug("%s %s -> %s", method, url, resp.status_code)
        return APIResponse(resp.status_code, dict(resp.headers), resp.text,
                           method=method, path=path)


def _error_detail(body: str) -> str:
    """Pull the server's error message out of a response body, if any."""
    if not body:
        return ""
    try:
        data = json.loads(body)
    except ValueError:
        return body.strip()
    if isinstance(data, dict):
        for key in ("message", "serverMessage", "detail", "error"):
            if data.get(key):
                return str(data[key])
    return body.strip()


def redact_auth(headers: Dict[str, str]) -> Dict[str, str]:
    """Return a copy of headers with Authorization values replaced by ``***REDACTED***``.

    Use this when including headers in logs or error messages to avoid
    leaking bearer tokens.
    """
    redacted = dict(headers)
    for key in list(redacted.keys()):
        if key.lower() == "authorization":
            redacted[key] = "***REDACTED***"
    return redacted
