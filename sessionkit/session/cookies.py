"""Session cookie I/O across host request/response shapes.

Hosts differ in what they offer: Starlette requests parse cookies and
Starlette responses have ``set_cookie``/``delete_cookie``, while a raw ASGI
``http.response.start`` message only has a header list. A ``CookieAdapter``
hides that difference; one is picked once, when the middleware is built.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote, unquote


@dataclass(frozen=True)
class CookieOptions:
    max_age: int | None = None  # seconds
    path: str | None = "/"
    domain: str | None = None
    secure: bool = False
    http_only: bool = True
    same_site: str | None = "strict"


def parse_cookie_header(header: str | None) -> dict[str, str]:
    """Parse a ``Cookie`` header into a name -> value dict."""
    cookies: dict[str, str] = {}
    if not header:
        return cookies
    for chunk in header.split(";"):
        name, sep, value = chunk.strip().partition("=")
        if not name or not sep:
            continue
        cookies[name] = unquote(value)
    return cookies


def build_set_cookie(name: str, value: str, options: CookieOptions) -> str:
    """Build a ``Set-Cookie`` header value."""
    parts = [f"{name}={quote(value, safe='')}"]
    if options.max_age is not None:
        parts.append(f"Max-Age={options.max_age}")
    if options.path:
        parts.append(f"Path={options.path}")
    if options.domain:
        parts.append(f"Domain={options.domain}")
    if options.secure:
        parts.append("Secure")
    if options.http_only:
        parts.append("HttpOnly")
    if options.same_site:
        parts.append(f"SameSite={options.same_site}")
    return "; ".join(parts)


@runtime_checkable
class CookieAdapter(Protocol):
    """Reads and writes a single cookie on host request/response objects."""

    def get_cookie(self, request: Any, name: str) -> str | None: ...

    def set_cookie(self, response: Any, name: str, value: str, options: CookieOptions) -> None: ...

    def clear_cookie(self, response: Any, name: str, options: CookieOptions) -> None: ...


class StarletteCookieAdapter:
    """Uses the cookie helpers of Starlette requests and responses."""

    def get_cookie(self, request: Any, name: str) -> str | None:
        return request.cookies.get(name)

    def set_cookie(self, response: Any, name: str, value: str, options: CookieOptions) -> None:
        response.set_cookie(
            key=name,
            value=value,
            max_age=options.max_age,
            path=options.path or "/",
            domain=options.domain,
            secure=options.secure,
            httponly=options.http_only,
            samesite=options.same_site.lower() if options.same_site else None,
        )

    def clear_cookie(self, response: Any, name: str, options: CookieOptions) -> None:
        response.delete_cookie(
            key=name,
            path=options.path or "/",
            domain=options.domain,
            secure=options.secure,
            httponly=options.http_only,
            samesite=options.same_site.lower() if options.same_site else None,
        )


class HeaderCookieAdapter:
    """Manual fallback: parses ``Cookie`` and appends ``Set-Cookie`` headers.

    The response may be ``MutableHeaders``, a raw ASGI header list, a plain
    mapping, or any object with a ``headers`` attribute holding one of those.
    A plain mapping can hold one ``Set-Cookie`` value; the last write wins.
    """

    def get_cookie(self, request: Any, name: str) -> str | None:
        headers = getattr(request, "headers", request)
        header = headers.get("cookie") if hasattr(headers, "get") else None
        return parse_cookie_header(header).get(name)

    def set_cookie(self, response: Any, name: str, value: str, options: CookieOptions) -> None:
        self._append(response, build_set_cookie(name, value, options))

    def clear_cookie(self, response: Any, name: str, options: CookieOptions) -> None:
        self._append(response, build_set_cookie(name, "", replace(options, max_age=0)))

    @staticmethod
    def _append(response: Any, cookie: str) -> None:
        headers = getattr(response, "headers", response)
        if isinstance(headers, list):
            headers.append((b"set-cookie", cookie.encode("latin-1")))
        elif callable(getattr(headers, "append", None)):
            headers.append("set-cookie", cookie)
        else:
            headers["set-cookie"] = cookie


def select_cookie_adapter(response: Any) -> CookieAdapter:
    """Pick an adapter for a response shape (instance or class)."""
    if callable(getattr(response, "set_cookie", None)) and callable(
        getattr(response, "delete_cookie", None)
    ):
        return StarletteCookieAdapter()
    return HeaderCookieAdapter()


class SessionCookies:
    """The session cookie: name, default attributes and an adapter."""

    def __init__(
        self,
        name: str,
        options: CookieOptions,
        adapter: CookieAdapter | None = None,
    ) -> None:
        self.name = name
        self.options = options
        self.adapter = adapter or HeaderCookieAdapter()

    def get_cookie(self, request: Any) -> str | None:
        return self.adapter.get_cookie(request, self.name) or None

    def set_cookie(self, response: Any, value: str, **overrides: Any) -> None:
        options = replace(self.options, **overrides) if overrides else self.options
        self.adapter.set_cookie(response, self.name, value, options)

    def clear_cookie(self, response: Any) -> None:
        self.adapter.clear_cookie(response, self.name, self.options)
