"""Cookie lookup used for CSRF tokens."""

from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable

from DrissionPage import ChromiumPage


@runtime_checkable
class CookieStore(Protocol):
    """Read access to cookies by name."""

    def get(self, name: str) -> str | None: ...


class BrowserCookieStore:
    """Reads cookies from the Chromium session the client piggybacks on."""

    def __init__(self, page: ChromiumPage) -> None:
        self._page = page

    def get(self, name: str) -> str | None:
        for cookie in self._page.cookies():
            if cookie.get("name") == name:
                return cookie.get("value")
        return None


class MemoryCookieStore:
    """Cookie store backed by a plain dict."""

    def __init__(self, cookies: Mapping[str, str] | None = None) -> None:
        self._cookies: dict[str, str] = dict(cookies or {})

    def get(self, name: str) -> str | None:
        return self._cookies.get(name)

    def set(self, name: str, value: str) -> None:
        self._cookies[name] = value

    def delete(self, name: str) -> None:
        self._cookies.pop(name, None)
