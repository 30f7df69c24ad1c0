"""
webcase - In-process HTTP Test Client.

Provides :class:`TestClient`, which issues ASGI requests directly against
the application without opening a socket, and :class:`TestResponse`,
the captured result.  The client keeps a cookie jar across requests and
a set of *server parameters* (header overrides applied to every request),
which is how the harness attaches credentials.
"""

from __future__ import annotations

import json as stdlib_json
import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlencode, urlsplit

from .utils import make_test_receive, make_test_scope, normalize_headers, parse_set_cookie

logger = logging.getLogger("webcase.client")


class TestResponse:
    """
    Captured result of one in-process request.

    ``headers`` keeps the last value sent for each name; every raw
    ``Set-Cookie`` header is kept, in order, in ``set_cookies``.
    """

    __test__ = False

    def __init__(
        self,
        status_code: int,
        headers: Dict[str, str],
        body: bytes,
        *,
        set_cookies: Optional[List[str]] = None,
        method: str = "GET",
        url: str = "",
    ):
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self.set_cookies = list(set_cookies or ())
        self.method = method
        self.url = url

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").split(";")[0].strip()

    @property
    def text(self) -> str:
        _, _, charset = self.headers.get("content-type", "").partition("charset=")
        return self.body.decode(charset.strip() or "utf-8")

    def json(self) -> Any:
        return stdlib_json.loads(self.body)

    @property
    def cookies(self) -> Dict[str, Optional[str]]:
        """Cookies set by this response; deleted ones map to ``None``."""
        result: Dict[str, Optional[str]] = {}
        for header in self.set_cookies:
            name, value, expired = parse_set_cookie(header)
            result[name] = None if expired else value
        return result

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("location")

    @property
    def is_success(self) -> bool:
        return self.status_code // 100 == 2

    @property
    def is_redirect(self) -> bool:
        return self.status_code // 100 == 3

    @property
    def is_client_error(self) -> bool:
        return self.status_code // 100 == 4

    @property
    def is_server_error(self) -> bool:
        return self.status_code // 100 == 5

    def __repr__(self) -> str:
        return f"<TestResponse {self.method} {self.url} [{self.status_code}]>"


class TestClient:
    """
    In-process ASGI test client.

    Usage::

        client = TestClient(app)
        client.set_server_parameters({"HTTP_ACCEPT_LANGUAGE": "fr"})
        resp = await client.get("/profile")
        assert resp.status_code == 200

    Cookies set by the application (``Set-Cookie``) or by the caller
    (:meth:`set_cookie`) are replayed on every subsequent request.
    """

    __test__ = False

    MAX_REDIRECTS = 20

    def __init__(
        self,
        app: Any,
        *,
        base_url: str = "http://testserver",
        server_parameters: Optional[Mapping[str, str]] = None,
        raise_server_exceptions: bool = True,
        follow_redirects: bool = False,
    ):
        """
        Args:
            app: ASGI application callable.
            base_url: Base URL used to fill in scheme and host (not opened).
            server_parameters: Header overrides injected into every request.
            raise_server_exceptions: Re-raise unhandled application errors.
            follow_redirects: Automatically follow 3xx redirects.
        """
        self._app = app
        self.base_url = base_url
        parts = urlsplit(base_url)
        self._scheme = parts.scheme or "http"
        self._host = parts.hostname or "testserver"
        self._port = parts.port or (443 if self._scheme == "https" else 80)
        self._server_parameters = normalize_headers(server_parameters)
        self._cookies: Dict[str, str] = {}
        self._raise_server_exceptions = raise_server_exceptions
        self.follow_redirects = follow_redirects
        self._history: List[TestResponse] = []

    # ------------------------------------------------------------------
    # Server parameters
    # ------------------------------------------------------------------

    def set_server_parameters(self, params: Optional[Mapping[str, str]]) -> None:
        """Replace the header overrides sent with every request."""
        self._server_parameters = normalize_headers(params)

    @property
    def server_parameters(self) -> Dict[str, str]:
        return dict(self._server_parameters)

    # ------------------------------------------------------------------
    # Cookie jar
    # ------------------------------------------------------------------

    def set_cookie(self, name: str, value: str) -> None:
        self._cookies[name] = value

    def delete_cookie(self, name: str) -> None:
        self._cookies.pop(name, None)

    def clear_cookies(self) -> None:
        self._cookies.clear()

    @property
    def cookies(self) -> Dict[str, str]:
        """Read-only view of the cookie jar."""
        return dict(self._cookies)

    @property
    def history(self) -> List[TestResponse]:
        """Redirect chain of the last request."""
        return list(self._history)

    # ------------------------------------------------------------------
    # HTTP verbs
    # ------------------------------------------------------------------

    async def get(self, path: str, **kw) -> TestResponse:
        return await self.request("GET", path, **kw)

    async def post(self, path: str, **kw) -> TestResponse:
        return await self.request("POST", path, **kw)

    async def put(self, path: str, **kw) -> TestResponse:
        return await self.request("PUT", path, **kw)

    async def patch(self, path: str, **kw) -> TestResponse:
        return await self.request("PATCH", path, **kw)

    async def delete(self, path: str, **kw) -> TestResponse:
        return await self.request("DELETE", path, **kw)

    async def head(self, path: str, **kw) -> TestResponse:
        return await self.request("HEAD", path, **kw)

    async def options(self, path: str, **kw) -> TestResponse:
        return await self.request("OPTIONS", path, **kw)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        json: Any = None,
        data: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
        follow_redirects: Optional[bool] = None,
    ) -> TestResponse:
        """
        Issue a request, following redirects when enabled.

        *path* may be a bare path (``/users?page=2``) or an absolute URL
        such as the ones produced by :meth:`Harness.url` with
        ``absolute=True``.
        """
        self._history.clear()
        should_follow = self.follow_redirects if follow_redirects is None else follow_redirects

        resp = await self._single_request(
            method, path, headers=headers, json=json, data=data, body=body,
        )

        redirects = 0
        while should_follow and resp.is_redirect and redirects < self.MAX_REDIRECTS:
            location = resp.location
            if not location:
                break
            redirects += 1
            self._history.append(resp)
            resp = await self._single_request("GET", location)

        return resp

    async def _single_request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        json: Any = None,
        data: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
    ) -> TestResponse:
        target = urlsplit(path)
        scheme = target.scheme or self._scheme
        host = target.hostname or self._host
        port = target.port or (self._port if not target.scheme else (443 if scheme == "https" else 80))

        merged: Dict[str, str] = {"host": host if port in (80, 443) else f"{host}:{port}"}
        merged.update(self._server_parameters)
        merged.update(normalize_headers(headers))

        if json is not None:
            body = stdlib_json.dumps(json).encode("utf-8")
            merged["content-type"] = "application/json"
        elif data is not None:
            body = urlencode(data).encode("utf-8")
            merged["content-type"] = "application/x-www-form-urlencoded"
        if body:
            merged["content-length"] = str(len(body))

        if self._cookies:
            merged["cookie"] = "; ".join(f"{k}={v}" for k, v in self._cookies.items())

        scope = make_test_scope(
            method=method,
            path=target.path or "/",
            query_string=target.query,
            headers=list(merged.items()),
            scheme=scheme,
            server=(host, port),
        )

        status_code = 500
        resp_headers: Dict[str, str] = {}
        set_cookies: List[str] = []
        body_parts: List[bytes] = []

        async def send(event: dict):
            nonlocal status_code
            if event["type"] == "http.response.start":
                status_code = event["status"]
                for raw_name, raw_value in event.get("headers", []):
                    name = raw_name.decode("latin-1").lower()
                    value = raw_value.decode("latin-1")
                    if name == "set-cookie":
                        set_cookies.append(value)
                    resp_headers[name] = value
            elif event["type"] == "http.response.body":
                body_parts.append(event.get("body", b""))

        try:
            await self._app(scope, make_test_receive(body), send)
        except Exception:
            logger.debug("Application raised during %s %s", method, path, exc_info=True)
            if self._raise_server_exceptions:
                raise

        resp = TestResponse(
            status_code=status_code,
            headers=resp_headers,
            body=b"".join(body_parts),
            set_cookies=set_cookies,
            method=method,
            url=path,
        )
        for name, value in resp.cookies.items():
            if value is None:
                self._cookies.pop(name, None)
            else:
                self._cookies[name] = value
        return resp
