"""Type definitions for lazyxhr."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, TypedDict

# JSON Type Definition
JSONValue = str | int | float | bool | None | dict[str, "JSONValue"] | list["JSONValue"]
JSONDict = dict[str, JSONValue]

# Other common types
Headers = dict[str, str]
Payload = str | bytes | None


class LifecycleEvent(str, Enum):
    """Public names of the events emitted during a request's life."""

    READYSTATECHANGE = "readystatechange"
    START = "start"
    PROGRESS = "progress"
    SUCCESS = "success"
    TIMEOUT = "timeout"
    DONE = "done"
    ERROR = "error"
    ABORTED = "aborted"


# Native XMLHttpRequest event type -> public lifecycle event.
TRANSPORT_EVENTS: Mapping[str, LifecycleEvent] = MappingProxyType({
    "readystatechange": LifecycleEvent.READYSTATECHANGE,
    "loadstart": LifecycleEvent.START,
    "progress": LifecycleEvent.PROGRESS,
    "load": LifecycleEvent.SUCCESS,
    "timeout": LifecycleEvent.TIMEOUT,
    "loadend": LifecycleEvent.DONE,
    "error": LifecycleEvent.ERROR,
    "abort": LifecycleEvent.ABORTED,
})

# Canonical response type name -> XMLHttpRequest.responseType value.
RESPONSE_TYPES: Mapping[str, str] = MappingProxyType({
    "TEXT": "text",
    "BUFFER": "arraybuffer",
    "BLOB": "blob",
    "HTML": "document",
    "XML": "document",
    "JSON": "json",
})


@dataclass(frozen=True)
class TransportEvent:
    """Base class of the raw events a transport reports.

    Attributes:
        type: Native event type, e.g. ``"load"``.
        ready_state: The transport's readyState when the event fired (0-4).
    """

    type: str
    ready_state: int = 0


@dataclass(frozen=True)
class ReadyStateEvent(TransportEvent):
    """Payload of ``readystatechange``."""


@dataclass(frozen=True)
class ProgressEvent(TransportEvent):
    """Payload of the progress family (loadstart, progress, load, timeout, loadend, error, abort)."""

    loaded: int = 0
    total: int = 0
    length_computable: bool = False


EVENT_PAYLOADS: Mapping[LifecycleEvent, type[TransportEvent]] = MappingProxyType({
    event: ReadyStateEvent if event is LifecycleEvent.READYSTATECHANGE else ProgressEvent
    for event in LifecycleEvent
})


class RecordedEvent(TypedDict):
    """One native event as recorded by the in-page XMLHttpRequest script."""

    type: str
    readyState: int
    loaded: int
    total: int
    lengthComputable: bool


class XhrResultData(TypedDict):
    """Structure of the data returned from the in-page XMLHttpRequest script."""

    events: list[RecordedEvent]
    readyState: int
    status: int
    statusText: str
    responseURL: str
    headers: str
    body: str | None
    encoding: str
