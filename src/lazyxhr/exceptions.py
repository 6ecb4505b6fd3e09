"""Custom exceptions for lazyxhr module."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .response import Response


class LazyxhrError(Exception):
    """Base exception class for all lazyxhr exceptions.

    All custom exceptions in this library should inherit from this class.
    This allows users to catch all library-specific errors with a single except block.
    """


class BrowserInitError(LazyxhrError):
    """Raised when the browser initialization fails.

    This error indicates that the underlying browser process (Chromium)
    could not be started or connected to.
    """


class InvalidOptionError(LazyxhrError, TypeError):
    """Raised when a configuration or request option is not recognised.

    Covers unknown option keys, unsupported response types and unknown
    lifecycle event names.
    """


class RequestFailed(LazyxhrError):
    """Raised (through the future) when a request ends without a successful load.

    Attributes:
        response: Generic response wrapper over the transport, exposing whatever
            status and headers were available when the request failed.
        event: The native transport event that ended the request, if any.
    """

    def __init__(self, message: str, response: Response, event: Any = None) -> None:
        super().__init__(message)
        self.response = response
        self.event = event


class NetworkError(RequestFailed):
    """The transport reported a network-level error."""


class RequestTimeout(RequestFailed, TimeoutError):
    """The configured timeout elapsed before the request completed."""


class RequestAborted(RequestFailed):
    """The request was canceled by the caller or the browser."""
