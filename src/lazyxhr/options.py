"""Instance defaults and per-request options."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping

from .exceptions import InvalidOptionError
from .schemas import RESPONSE_TYPES, Payload

if TYPE_CHECKING:
    from .client import Client
    from .transport import Transport

BeforeSend = Callable[["Client", "Transport"], None]

DEFAULT_SAFE_METHODS = frozenset(("get", "options", "head"))


def normalize_response_type(value: str) -> str:
    """Return the transport value for a response type given by name or value.

    Accepts canonical names (``"BUFFER"``, ``"html"``) as well as the
    XMLHttpRequest values themselves (``"arraybuffer"``, ``"json"``).

    Raises:
        InvalidOptionError: If the response type is not supported.
    """
    if not isinstance(value, str):
        raise InvalidOptionError(f"response_type must be a string, got {type(value).__name__}")

    key = value.upper()
    if key in RESPONSE_TYPES:
        return RESPONSE_TYPES[key]
    lowered = value.lower()
    if lowered in RESPONSE_TYPES.values():
        return lowered
    raise InvalidOptionError(f"Unsupported response_type: {value!r}")


def transport_response_type(response_type: str) -> str:
    """Translate a negotiated response type to what is set on the transport.

    JSON is fetched as text and decoded client side by ``JsonResponse``.
    """
    if response_type == RESPONSE_TYPES["JSON"]:
        return RESPONSE_TYPES["TEXT"]
    return response_type


def _check_keys(cls: type, overrides: Mapping[str, Any]) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise InvalidOptionError(
            f"Unknown {cls.__name__} option(s): {', '.join(unknown)}"
        )


@dataclass(frozen=True)
class CsrfConfig:
    """CSRF token settings.

    Attributes:
        cookie_name: Cookie holding the token.
        header_name: Request header the token is copied to.
        safe_methods: Methods that never carry the token, compared case-insensitively.
    """

    cookie_name: str = "csrf"
    header_name: str = "x-csrf-token"
    safe_methods: frozenset[str] = DEFAULT_SAFE_METHODS


@dataclass(frozen=True)
class ClientConfig:
    """Instance-level defaults shared by every request of a client.

    Attributes:
        timeout: Request timeout in milliseconds. None or 0 disables it.
        before_send: Hook called with (client, transport) right before send.
        response_type: Default response type, ``json`` unless overridden.
        with_csrf: Whether CSRF tokens are attached to unsafe methods.
        csrf_cookie_name: Cookie holding the CSRF token.
        csrf_header_name: Header the CSRF token is sent in.
        csrf_safe_methods: Methods exempted from carrying the token.
        with_credentials: Whether cross-site requests send credentials.
    """

    timeout: int | None = None
    before_send: BeforeSend | None = None
    response_type: str = "json"
    with_csrf: bool = True
    csrf_cookie_name: str = "csrf"
    csrf_header_name: str = "x-csrf-token"
    csrf_safe_methods: frozenset[str] = DEFAULT_SAFE_METHODS
    with_credentials: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "response_type", normalize_response_type(self.response_type))
        object.__setattr__(self, "csrf_safe_methods", frozenset(self.csrf_safe_methods))

    def merged(self, **overrides: Any) -> ClientConfig:
        """Return a copy with ``overrides`` applied.

        Raises:
            InvalidOptionError: If an override does not name a field.
        """
        _check_keys(ClientConfig, overrides)
        return replace(self, **overrides)

    @property
    def csrf(self) -> CsrfConfig:
        return CsrfConfig(
            cookie_name=self.csrf_cookie_name,
            header_name=self.csrf_header_name,
            safe_methods=self.csrf_safe_methods,
        )


@dataclass(frozen=True)
class RequestOptions:
    """Options for a single request.

    Fields left as None fall back to the client's ``ClientConfig``.
    """

    method: str = "GET"
    payload: Payload = None
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: int | None = None
    with_credentials: bool | None = None
    with_csrf: bool | None = None
    response_type: str | None = None
    before_send: BeforeSend | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", (self.method or "GET").upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers or {})))
        if self.response_type is not None:
            object.__setattr__(
                self, "response_type", normalize_response_type(self.response_type)
            )

    @classmethod
    def from_overrides(cls, overrides: Mapping[str, Any]) -> RequestOptions:
        """Build options from keyword overrides.

        Raises:
            InvalidOptionError: If a key does not name an option.
        """
        _check_keys(cls, overrides)
        return cls(**overrides)

    def resolve(self, config: ClientConfig) -> ResolvedOptions:
        """Merge these options over ``config``."""
        return ResolvedOptions(
            method=self.method,
            payload=self.payload,
            headers=self.headers,
            timeout=self.timeout if self.timeout is not None else config.timeout,
            with_credentials=(
                self.with_credentials
                if self.with_credentials is not None
                else config.with_credentials
            ),
            with_csrf=self.with_csrf if self.with_csrf is not None else config.with_csrf,
            response_type=self.response_type or config.response_type,
            before_send=self.before_send or config.before_send,
        )


@dataclass(frozen=True)
class ResolvedOptions:
    """Effective settings of one dispatch, after merging over the defaults."""

    method: str
    payload: Payload
    headers: Mapping[str, str]
    timeout: int | None
    with_credentials: bool
    with_csrf: bool
    response_type: str
    before_send: BeforeSend | None
