"""Main client module for lazyxhr."""

from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType
from typing import Any, Callable
from urllib.parse import urljoin

from DrissionPage import ChromiumOptions, ChromiumPage

from .cookies import BrowserCookieStore, CookieStore
from .csrf import CsrfPolicy
from .events import EventBus, EventCallback
from .exceptions import (
    BrowserInitError,
    NetworkError,
    RequestAborted,
    RequestFailed,
    RequestTimeout,
)
from .futures import CancelableFuture
from .options import ClientConfig, RequestOptions, ResolvedOptions, transport_response_type
from .response import Response, decode_response
from .schemas import TRANSPORT_EVENTS, LifecycleEvent, TransportEvent
from .transport import BrowserTransport, Transport

logger = logging.getLogger(__name__)

# Type alias for page factory
PageFactory = Callable[[ChromiumOptions], ChromiumPage]
TransportFactory = Callable[["Client"], Transport]

# Native terminal event -> exception the future is rejected with.
_FAILURES: dict[str, type[RequestFailed]] = {
    "timeout": RequestTimeout,
    "abort": RequestAborted,
    "error": NetworkError,
}


def _browser_transport(client: Client) -> Transport:
    return BrowserTransport(client.page)


class Client:
    """An event-driven XMLHttpRequest client powered by a Chromium browser backend.

    Every request runs as a real XMLHttpRequest inside the browser, so it
    carries the session's cookies and origin. Requests return a
    ``CancelableFuture`` of a ``Response`` and report their progress through
    lifecycle events (see ``on``). With the default ``BrowserTransport`` the
    browser records the events and they are delivered in order once the
    request has ended, so ``progress`` callbacks fire together at the end
    rather than during the download.

    Attributes:
        base_url: The base URL for relative request URLs.
        profile_dir: Path to the browser profile directory.
        headless: Whether the browser runs in headless mode.
        config: Instance defaults applied to every request.
        cookies: Where the CSRF cookie is read from.
        events: The client's lifecycle event bus.
    """

    def __init__(
        self,
        base_url: str | None = None,
        profile_dir: str | Path = "./browser_data",
        headless: bool = True,
        config: ClientConfig | None = None,
        cookie_store: CookieStore | None = None,
        transport_factory: TransportFactory | None = None,
        page_factory: PageFactory | None = None,
        **defaults: Any,
    ) -> None:
        """Initialize the Client.

        Args:
            base_url: The base URL to prefix to relative URLs.
            profile_dir: Directory path for the user data profile.
            headless: Run browser in headless mode.
            config: Instance defaults. Built from ``defaults`` when omitted.
            cookie_store: Cookie lookup for CSRF tokens (for testing/DI).
                Defaults to the browser's cookies.
            transport_factory: Callable creating one transport per request
                (for testing/DI). Defaults to ``BrowserTransport``.
            page_factory: Optional callable to create browser pages (for testing/DI).
            **defaults: ``ClientConfig`` fields overriding ``config``.

        Raises:
            BrowserInitError: If browser fails to start.
            InvalidOptionError: If ``defaults`` names an unknown field.
        """
        self.base_url = base_url.rstrip("/") if base_url else None
        self.profile_dir = Path(profile_dir)
        self.headless = headless
        self.config = (config or ClientConfig()).merged(**defaults)
        self._page_factory = page_factory
        self._transport_factory = transport_factory or _browser_transport

        self.events = EventBus()

        self._page: ChromiumPage | None = None
        self._init_browser()

        self.cookies: CookieStore = cookie_store or BrowserCookieStore(self.page)
        self.csrf = CsrfPolicy(self.config.csrf, self.cookies)

    def _init_browser(self) -> None:
        """Initialize the DrissionPage browser instance.

        Raises:
            BrowserInitError: If initialization fails.
        """
        try:
            options = ChromiumOptions()
            options.set_user_data_path(str(self.profile_dir))
            options.headless(self.headless)

            if self._page_factory:
                self._page = self._page_factory(options)
            else:
                self._page = ChromiumPage(options)
        except Exception as e:
            # Catching generic Exception because DrissionPage can raise various errors
            raise BrowserInitError(f"Failed to initialize browser: {e}") from e

    @property
    def page(self) -> ChromiumPage:
        """Return the active DrissionPage instance.

        Raises:
            BrowserInitError: If page is not initialized.
        """
        if self._page is None:
            raise BrowserInitError("Browser has not been initialized.")
        return self._page

    def _resolve_url(self, endpoint: str) -> str:
        """Resolve a partial endpoint to a full URL."""
        endpoint = str(endpoint)
        if endpoint.startswith(("http://", "https://")):
            return endpoint

        if self.base_url:
            return urljoin(self.base_url + "/", endpoint.lstrip("/"))

        return endpoint

    def on(self, event: LifecycleEvent | str, callback: EventCallback) -> int:
        """Subscribe to a lifecycle event of every request sent by this client.

        Returns:
            A callback id for ``off``.
        """
        return self.events.on(event, callback)

    def off(self, callback_id: int) -> bool:
        return self.events.off(callback_id)

    def supports_cors(self) -> bool:
        """Return whether the browser's XMLHttpRequest supports credentialed CORS."""
        return bool(self.page.run_js("return 'withCredentials' in new XMLHttpRequest();"))

    def dispatch(self, url: str, **options: Any) -> CancelableFuture[Response]:
        """Send one request and return a future of its response.

        Args:
            url: Target URL or path.
            **options: ``RequestOptions`` fields (method, payload, headers,
                timeout, with_credentials, with_csrf, response_type, before_send).
                Unset fields fall back to the client's config.

        Returns:
            A future resolved with the decoded Response on load, or rejected
            with RequestTimeout, RequestAborted or NetworkError.

        Raises:
            InvalidOptionError: If an option is unknown or invalid.
        """
        opts = RequestOptions.from_overrides(options).resolve(self.config)
        transport = self._transport_factory(self)
        transport.open(opts.method, self._resolve_url(url))

        self._listen(transport)
        self._set_options(transport, opts)
        self.csrf.apply(transport, opts.method, opts.with_csrf)

        # Decided before configuration is handed to the hook and never changed after.
        response_type = opts.response_type
        transport.response_type = transport_response_type(response_type)

        if opts.before_send:
            opts.before_send(self, transport)

        future: CancelableFuture[Response] = CancelableFuture(
            on_cancel=transport.abort,
            make_cancel_error=lambda: RequestAborted(
                "Request was canceled", Response(transport, self)
            ),
        )
        self._bind_settlement(transport, future, response_type)

        logger.debug(
            "Dispatching %s %s (response_type=%s)", transport.method, transport.url, response_type
        )
        transport.send(opts.payload)
        return future

    def _listen(self, transport: Transport) -> None:
        for native, public in TRANSPORT_EVENTS.items():
            transport.add_event_listener(native, self._relay(public))

    def _relay(self, public: LifecycleEvent) -> Callable[[TransportEvent], None]:
        def relay(event: TransportEvent) -> None:
            self.events.emit(public, event)

        return relay

    def _set_options(self, transport: Transport, opts: ResolvedOptions) -> None:
        if opts.with_credentials:
            transport.with_credentials = True

        if opts.timeout:
            transport.timeout = opts.timeout

        for name, value in opts.headers.items():
            transport.set_request_header(name, value)

    def _bind_settlement(
        self,
        transport: Transport,
        future: CancelableFuture[Response],
        response_type: str,
    ) -> None:
        def on_load(event: TransportEvent) -> None:
            if future.settled:
                return
            try:
                response = decode_response(response_type, transport, self)
            except Exception as e:
                future.reject(e)
                return
            if future.resolve(response):
                logger.debug("%s %s -> %s", transport.method, transport.url, transport.status)

        transport.add_event_listener("load", on_load)

        for native, error_cls in _FAILURES.items():
            transport.add_event_listener(
                native, self._rejection(transport, future, error_cls)
            )

    def _rejection(
        self,
        transport: Transport,
        future: CancelableFuture[Response],
        error_cls: type[RequestFailed],
    ) -> Callable[[TransportEvent], None]:
        def reject(event: TransportEvent) -> None:
            if future.settled:
                return
            message = f"{transport.method} {transport.url} ended with '{event.type}'"
            if future.reject(error_cls(message, Response(transport, self), event)):
                logger.debug("%s", message)

        return reject

    def request(self, method: str, url: str, **options: Any) -> CancelableFuture[Response]:
        """Send a request with an explicit method."""
        return self.dispatch(url, method=method, **options)

    def get(self, url: str, **options: Any) -> CancelableFuture[Response]:
        """Send a GET request."""
        return self.request("GET", url, **options)

    def post(self, url: str, **options: Any) -> CancelableFuture[Response]:
        """Send a POST request."""
        return self.request("POST", url, **options)

    def put(self, url: str, **options: Any) -> CancelableFuture[Response]:
        """Send a PUT request."""
        return self.request("PUT", url, **options)

    def patch(self, url: str, **options: Any) -> CancelableFuture[Response]:
        """Send a PATCH request."""
        return self.request("PATCH", url, **options)

    def delete(self, url: str, **options: Any) -> CancelableFuture[Response]:
        """Send a DELETE request."""
        return self.request("DELETE", url, **options)

    def options(self, url: str, **options: Any) -> CancelableFuture[Response]:
        """Send an OPTIONS request."""
        return self.request("OPTIONS", url, **options)

    def head(self, url: str, **options: Any) -> CancelableFuture[Response]:
        """Send a HEAD request."""
        return self.request("HEAD", url, **options)

    def close(self) -> None:
        """Close the browser instance."""
        if self._page:
            self._page.quit()
            self._page = None

    def __enter__(self) -> Client:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
