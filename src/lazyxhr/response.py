"""Response classes for lazyxhr."""

from __future__ import annotations

import json
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from .schemas import JSONValue

if TYPE_CHECKING:
    from .client import Client
    from .transport import Transport


class Response:
    """Read-only view of a finished transport.

    This class provides an interface similar to `requests.Response`. It is the
    generic pass-through wrapper: ``body`` is whatever the transport produced
    (bytes for arraybuffer/blob, markup for documents).

    Attributes:
        transport: The transport the response was read from.
        client: The client that dispatched the request.
    """

    def __init__(self, transport: Transport, client: Client) -> None:
        """Initialize the Response object.

        Args:
            transport: The completed (or failed) transport.
            client: The dispatching client.
        """
        self._transport = transport
        self._client = client
        # Snapshot the headers; the transport object stays owned by the request.
        self._headers = MappingProxyType(dict(transport.response_headers))

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def client(self) -> Client:
        return self._client

    @property
    def status_code(self) -> int:
        """Integer Code of responded HTTP Status, e.g. 404 or 200. 0 if none was received."""
        return self._transport.status

    @property
    def reason(self) -> str:
        return self._transport.status_text

    @property
    def url(self) -> str:
        """Final URL location of Response, falling back to the requested URL."""
        return self._transport.response_url or self._transport.url

    @property
    def headers(self) -> Mapping[str, str]:
        """Response headers, keys lowercased."""
        return self._headers

    @property
    def body(self) -> Any:
        """The decoded body."""
        return self._transport.response

    @property
    def text(self) -> str:
        """Content of the response, in unicode."""
        raw = self._transport.response
        if isinstance(raw, bytes):
            return raw.decode("utf-8", errors="replace")
        if isinstance(raw, str):
            return raw
        return self._transport.response_text

    @property
    def content(self) -> bytes:
        """Content of the response, in bytes."""
        raw = self._transport.response
        if isinstance(raw, bytes):
            return raw
        return self.text.encode("utf-8")

    def json(self, **kwargs: Any) -> JSONValue:
        """Returns the json-encoded content of a response, if any.

        Raises:
            json.JSONDecodeError: If the response body does not contain valid JSON.
        """
        return json.loads(self.text, **kwargs)

    @property
    def ok(self) -> bool:
        """Returns True if :attr:`status_code` is in the 200-299 range, False if not."""
        return 200 <= self.status_code < 300

    def __repr__(self) -> str:
        return f"<{type(self).__name__} [{self.status_code}]>"


class TextResponse(Response):
    """Response whose body is the plain response text."""

    @property
    def body(self) -> str:
        return self.text


class JsonResponse(Response):
    """Response whose body is parsed from the response text on first access."""

    _unset = object()

    def __init__(self, transport: Transport, client: Client) -> None:
        super().__init__(transport, client)
        self._body: Any = self._unset

    @property
    def body(self) -> JSONValue:
        """The parsed JSON body, or None for an empty response.

        Raises:
            json.JSONDecodeError: If the response text is not valid JSON.
        """
        if self._body is self._unset:
            text = self.text
            self._body = json.loads(text) if text.strip() else None
        return self._body


DECODERS: Mapping[str, type[Response]] = MappingProxyType({
    "json": JsonResponse,
    "text": TextResponse,
})


def decode_response(response_type: str, transport: Transport, client: Client) -> Response:
    """Wrap ``transport`` in the response class for the negotiated type."""
    return DECODERS.get(response_type, Response)(transport, client)
