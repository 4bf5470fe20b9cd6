"""Playback lifecycle state machine driven by engine events."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from .logging_utils import get_logger

log = get_logger(__name__)


class PlaybackState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    BUFFERING = "buffering"
    ERROR = "error"


class ErrorKind(str, Enum):
    NETWORK = "network"
    MEDIA = "media"
    OTHER = "other"


ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Network unreachable; the channel link may be down.",
    ErrorKind.MEDIA: "Media could not be decoded.",
    ErrorKind.OTHER: "Playback failed.",
}


@dataclass(frozen=True, slots=True)
class ChannelAssigned:
    """A new channel was handed to the engine."""

    url: str = ""


@dataclass(frozen=True, slots=True)
class ManifestReady:
    """The stream manifest was parsed and playback started."""


@dataclass(frozen=True, slots=True)
class Stalled:
    """The engine ran out of buffered media."""


@dataclass(frozen=True, slots=True)
class Resumed:
    """Playback continued after a stall or pause."""


@dataclass(frozen=True, slots=True)
class Paused:
    """Playback halted without an error."""


@dataclass(frozen=True, slots=True)
class EngineError:
    """An error reported by the engine.

    Non-fatal errors are retried inside the engine and never change state.
    """

    fatal: bool
    kind: ErrorKind = ErrorKind.OTHER
    detail: str = ""

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self.kind]


PlaybackEvent = Union[ChannelAssigned, ManifestReady, Stalled, Resumed, Paused, EngineError]


def transition(state: PlaybackState, event: PlaybackEvent) -> PlaybackState:
    """Return the state that follows *state* after *event*."""

    if isinstance(event, ChannelAssigned):
        return PlaybackState.LOADING
    if state is PlaybackState.ERROR:
        return state
    if isinstance(event, (ManifestReady, Resumed)):
        return PlaybackState.PLAYING
    if isinstance(event, Stalled):
        return PlaybackState.BUFFERING
    if isinstance(event, Paused):
        return PlaybackState.IDLE
    if isinstance(event, EngineError) and event.fatal:
        return PlaybackState.ERROR
    return state


StateListener = Callable[[PlaybackState, PlaybackState], None]


class PlaybackStateTracker:
    """Apply engine events to the playback state and remember the last error."""

    __slots__ = ("_state", "_error", "_listeners")

    def __init__(self) -> None:
        self._state = PlaybackState.IDLE
        self._error: Optional[EngineError] = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def error(self) -> Optional[EngineError]:
        """The fatal error that put the tracker in ``error``, if any."""

        return self._error

    @property
    def error_message(self) -> Optional[str]:
        return self._error.message if self._error is not None else None

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def handle(self, event: PlaybackEvent) -> PlaybackState:
        previous = self._state
        current = transition(previous, event)
        if isinstance(event, ChannelAssigned):
            self._error = None
        elif current is PlaybackState.ERROR and previous is not PlaybackState.ERROR:
            assert isinstance(event, EngineError)
            self._error = event
            log.error("Playback error (%s): %s", event.kind.value, event.detail or event.message)
        elif isinstance(event, EngineError) and not event.fatal:
            log.warning("Recoverable %s error: %s", event.kind.value, event.detail)
        if current is previous:
            return current
        self._state = current
        log.debug("Playback state %s -> %s", previous.value, current.value)
        for listener in list(self._listeners):
            listener(previous, current)
        return current


__all__ = [
    "ERROR_MESSAGES",
    "ChannelAssigned",
    "EngineError",
    "ErrorKind",
    "ManifestReady",
    "Paused",
    "PlaybackEvent",
    "PlaybackState",
    "PlaybackStateTracker",
    "Resumed",
    "Stalled",
    "transition",
]
