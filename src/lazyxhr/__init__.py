import logging

from .client import Client
from .cookies import BrowserCookieStore, CookieStore, MemoryCookieStore
from .exceptions import (
    BrowserInitError,
    InvalidOptionError,
    LazyxhrError,
    NetworkError,
    RequestAborted,
    RequestFailed,
    RequestTimeout,
)
from .futures import CancelableFuture
from .logger import setup_logging
from .options import ClientConfig, CsrfConfig, RequestOptions
from .response import JsonResponse, Response, TextResponse
from .schemas import RESPONSE_TYPES, TRANSPORT_EVENTS, LifecycleEvent
from .transport import BrowserTransport, Transport

__version__ = "1.0.0"

# Add NullHandler to prevent logging warnings if no handler is configured by the user.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Client",
    "ClientConfig",
    "CsrfConfig",
    "RequestOptions",
    "CancelableFuture",
    "Response",
    "TextResponse",
    "JsonResponse",
    "Transport",
    "BrowserTransport",
    "CookieStore",
    "BrowserCookieStore",
    "MemoryCookieStore",
    "LifecycleEvent",
    "RESPONSE_TYPES",
    "TRANSPORT_EVENTS",
    "LazyxhrError",
    "BrowserInitError",
    "InvalidOptionError",
    "RequestFailed",
    "NetworkError",
    "RequestTimeout",
    "RequestAborted",
    "setup_logging",
]
