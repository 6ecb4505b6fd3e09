"""XMLHttpRequest-shaped transports."""

from __future__ import annotations

import base64
import itertools
import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable

from DrissionPage import ChromiumPage

from .schemas import (
    Headers,
    Payload,
    ProgressEvent,
    ReadyStateEvent,
    RecordedEvent,
    TransportEvent,
    XhrResultData,
)

logger = logging.getLogger(__name__)

EventListener = Callable[[TransportEvent], None]

UNSENT, OPENED, HEADERS_RECEIVED, LOADING, DONE = range(5)


def parse_header_block(raw: str) -> Headers:
    """Parse the output of ``getAllResponseHeaders()`` into a dict.

    Header names are lowercased, repeated headers are joined with ``", "``.
    """
    headers: Headers = {}
    for line in raw.splitlines():
        name, sep, value = line.partition(":")
        if not sep:
            continue
        name = name.strip().lower()
        value = value.strip()
        headers[name] = f"{headers[name]}, {value}" if name in headers else value
    return headers


def make_event(
    event_type: str,
    ready_state: int = 0,
    loaded: int = 0,
    total: int = 0,
    length_computable: bool = False,
) -> TransportEvent:
    """Build the payload object matching a native event type."""
    if event_type == "readystatechange":
        return ReadyStateEvent(type=event_type, ready_state=ready_state)
    return ProgressEvent(
        type=event_type,
        ready_state=ready_state,
        loaded=loaded,
        total=total,
        length_computable=length_computable,
    )


class Transport(ABC):
    """The native request object a client configures and sends.

    Mirrors the surface of the browser's XMLHttpRequest. Subclasses implement
    ``send`` and ``abort`` and report progress through ``_fire``.
    """

    def __init__(self) -> None:
        self.method: str = "GET"
        self.url: str = ""
        self.request_headers: Headers = {}
        self.with_credentials: bool = False
        self.timeout: int = 0
        self.response_type: str = ""

        self.ready_state: int = UNSENT
        self.status: int = 0
        self.status_text: str = ""
        self.response_url: str = ""
        self.response_headers: Headers = {}
        self.response: Any = None
        self.response_text: str = ""

        self._listeners: dict[str, list[EventListener]] = {}

    def open(self, method: str, url: str) -> None:
        self.method = method.upper()
        self.url = str(url)
        self.ready_state = OPENED

    def set_request_header(self, name: str, value: str) -> None:
        # Matches XMLHttpRequest: repeated names are combined.
        if name in self.request_headers:
            self.request_headers[name] = f"{self.request_headers[name]}, {value}"
        else:
            self.request_headers[name] = value

    def get_response_header(self, name: str) -> str | None:
        return self.response_headers.get(name.lower())

    def add_event_listener(self, event_type: str, listener: EventListener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def _fire(self, event: TransportEvent) -> None:
        for listener in list(self._listeners.get(event.type, ())):
            listener(event)

    @abstractmethod
    def send(self, payload: Payload = None) -> None:
        """Start the request. Must not block the caller until completion."""

    @abstractmethod
    def abort(self) -> None:
        """Cancel the request if it is in flight."""


_XHR_SCRIPT = """
(async () => {
    const registry = window.__lazyxhr || (window.__lazyxhr = {});
    const cancelled = window.__lazyxhr_cancelled || (window.__lazyxhr_cancelled = {});
    if (cancelled[%(id)s]) {
        delete cancelled[%(id)s];
        const aborted = type => ({type: type, readyState: 0, loaded: 0, total: 0, lengthComputable: false});
        return {
            events: [aborted('abort'), aborted('loadend')],
            readyState: 0,
            status: 0,
            statusText: '',
            responseURL: '',
            headers: '',
            body: null,
            encoding: 'text'
        };
    }

    const xhr = new XMLHttpRequest();
    registry[%(id)s] = xhr;
    const events = [];
    const record = e => events.push({
        type: e.type,
        readyState: xhr.readyState,
        loaded: e.loaded || 0,
        total: e.total || 0,
        lengthComputable: !!e.lengthComputable
    });
    for (const name of ['readystatechange', 'loadstart', 'progress', 'load',
                        'timeout', 'loadend', 'error', 'abort']) {
        xhr.addEventListener(name, record);
    }
    const finished = new Promise(resolve => xhr.addEventListener('loadend', resolve));

    xhr.open(%(method)s, %(url)s);
    xhr.withCredentials = %(with_credentials)s;
    if (%(timeout)s) xhr.timeout = %(timeout)s;
    for (const [name, value] of Object.entries(%(headers)s)) {
        xhr.setRequestHeader(name, value);
    }
    if (%(response_type)s) xhr.responseType = %(response_type)s;
    xhr.send(%(payload)s);
    await finished;
    delete registry[%(id)s];

    const toBase64 = buffer => {
        const bytes = new Uint8Array(buffer);
        let binary = '';
        for (let i = 0; i < bytes.length; i += 0x8000) {
            binary += String.fromCharCode.apply(null, bytes.subarray(i, i + 0x8000));
        }
        return btoa(binary);
    };

    let body = null;
    let encoding = 'text';
    if (xhr.response !== null && xhr.response !== undefined) {
        if (xhr.responseType === 'arraybuffer') {
            body = toBase64(xhr.response);
            encoding = 'base64';
        } else if (xhr.responseType === 'blob') {
            body = toBase64(await xhr.response.arrayBuffer());
            encoding = 'base64';
        } else if (xhr.responseType === 'document') {
            body = xhr.response.documentElement ? xhr.response.documentElement.outerHTML : '';
            encoding = 'markup';
        } else if (xhr.responseType === 'json') {
            body = JSON.stringify(xhr.response);
            encoding = 'json';
        } else {
            body = xhr.responseText;
        }
    }

    return {
        events: events,
        readyState: xhr.readyState,
        status: xhr.status,
        statusText: xhr.statusText,
        responseURL: xhr.responseURL,
        headers: xhr.getAllResponseHeaders(),
        body: body,
        encoding: encoding
    };
})()
"""


# Runs either before the request script has started (the request is then
# never sent) or after it has registered and sent the XMLHttpRequest.
_ABORT_SCRIPT = """
(() => {
    const cancelled = window.__lazyxhr_cancelled || (window.__lazyxhr_cancelled = {});
    const xhr = window.__lazyxhr && window.__lazyxhr[%(id)s];
    if (xhr) {
        delete window.__lazyxhr[%(id)s];
        xhr.abort();
    } else {
        cancelled[%(id)s] = true;
    }
    return !!xhr;
})()
"""

# Extra seconds the DevTools call may take on top of the request timeout.
CDP_GRACE = 30.0
# Used when the request has no timeout; DrissionPage's own default is 30 s.
CDP_NO_TIMEOUT = 7 * 24 * 3600.0


class BrowserTransport(Transport):
    """Runs one XMLHttpRequest inside a Chromium page.

    Configuration is collected in Python, so ``before_send`` hooks can still
    change it. ``send`` evaluates the request in the page on a worker thread.
    The browser records every event, and they are replayed to listeners in
    order only once the request has ended, so ``progress`` listeners receive
    their events together at the end rather than while the body downloads.
    """

    _ids = itertools.count(1)

    def __init__(self, page: ChromiumPage) -> None:
        super().__init__()
        self._page = page
        self._id = next(self._ids)
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._aborted = False
        self._in_page = False
        self._finished = False

    def _render(self, payload: Payload) -> str:
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        return _XHR_SCRIPT % {
            "id": self._id,
            "method": json.dumps(self.method),
            "url": json.dumps(self.url),
            "with_credentials": json.dumps(bool(self.with_credentials)),
            "timeout": json.dumps(int(self.timeout or 0)),
            "headers": json.dumps(self.request_headers),
            "response_type": json.dumps(self.response_type),
            "payload": json.dumps(payload),
        }

    def _cdp_timeout(self) -> float:
        if self.timeout:
            return self.timeout / 1000 + CDP_GRACE
        return CDP_NO_TIMEOUT

    def send(self, payload: Payload = None) -> None:
        if self._thread is not None:
            raise RuntimeError("Transport has already been sent")

        script = self._render(payload)
        self._thread = threading.Thread(
            target=self._run,
            args=(script,),
            name=f"lazyxhr-{self._id}",
            daemon=True,
        )
        self._thread.start()

    def abort(self) -> None:
        with self._lock:
            if self._thread is None or self._aborted or self._finished:
                return
            self._aborted = True
            in_page = self._in_page

        # Otherwise the worker sees the flag and never evaluates the request.
        if in_page:
            self._abort_in_page()

    def _abort_in_page(self) -> None:
        try:
            self._page.run_cdp(
                "Runtime.evaluate",
                expression=_ABORT_SCRIPT % {"id": self._id},
                returnByValue=True,
            )
        except Exception as e:
            # Catching generic Exception because DrissionPage can raise various errors
            logger.warning("Failed to abort request %s in the browser: %s", self._id, e)

    def _end(self, event_type: str, ready_state: int) -> None:
        with self._lock:
            self._finished = True
        self.ready_state = ready_state
        self._fire(make_event(event_type, ready_state))
        self._fire(make_event("loadend", ready_state))

    def _run(self, script: str) -> None:
        with self._lock:
            aborted = self._aborted
            self._in_page = not aborted
        if aborted:
            logger.debug("XMLHttpRequest %s aborted before it reached the browser", self._id)
            self._end("abort", UNSENT)
            return

        logger.debug("Executing XMLHttpRequest %s %s (id=%s)", self.method, self.url, self._id)
        try:
            cdp_res = self._page.run_cdp(
                "Runtime.evaluate",
                expression=script,
                awaitPromise=True,
                returnByValue=True,
                includeCommandLineAPI=False,
                _timeout=self._cdp_timeout(),
            )
            if "exceptionDetails" in cdp_res:
                raise RuntimeError(f"JS Execution Error: {cdp_res['exceptionDetails']}")

            result_value = cdp_res.get("result", {}).get("value")
            if not isinstance(result_value, dict) or "events" not in result_value:
                raise RuntimeError(f"Unexpected JS result: {result_value!r}")
        except Exception as e:
            logger.warning("XMLHttpRequest %s failed in the browser: %s", self._id, e)
            # The page-side request must not outlive the failure reported here.
            self._abort_in_page()
            self._end("error", DONE)
            return

        with self._lock:
            self._finished = True
        self._apply_result(result_value)
        for recorded in result_value["events"]:
            self._fire(self._to_event(recorded))

    def _apply_result(self, data: XhrResultData) -> None:
        self.ready_state = data.get("readyState", DONE)
        self.status = data.get("status", 0)
        self.status_text = data.get("statusText", "")
        self.response_url = data.get("responseURL", "")
        self.response_headers = parse_header_block(data.get("headers", ""))

        body = data.get("body")
        encoding = data.get("encoding", "text")
        if body is None:
            self.response = None
        elif encoding == "base64":
            self.response = base64.b64decode(body)
        elif encoding == "json":
            self.response = json.loads(body)
        else:
            self.response = body

        if self.response_type in ("", "text") and isinstance(body, str):
            self.response_text = body

    @staticmethod
    def _to_event(recorded: RecordedEvent) -> TransportEvent:
        return make_event(
            recorded.get("type", ""),
            ready_state=recorded.get("readyState", 0),
            loaded=recorded.get("loaded", 0),
            total=recorded.get("total", 0),
            length_computable=recorded.get("lengthComputable", False),
        )
