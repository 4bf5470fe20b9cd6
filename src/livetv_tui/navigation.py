"""Active channel tracking with wraparound next/previous navigation."""
from __future__ import annotations

from typing import Callable, Optional, Sequence

from .logging_utils import get_logger
from .playlist import Channel

log = get_logger(__name__)

SelectionListener = Callable[[Channel], None]


class SelectionNavigator:
    """Track the active channel and step through a filtered view.

    The view is supplied on every call, so navigation always follows the
    current filter even when the active channel is no longer part of it.
    """

    __slots__ = ("_active", "_listeners")

    def __init__(self) -> None:
        self._active: Optional[Channel] = None
        self._listeners: list[SelectionListener] = []

    @property
    def active(self) -> Optional[Channel]:
        return self._active

    def add_listener(self, listener: SelectionListener) -> None:
        """Call *listener* with the channel after every selection."""

        self._listeners.append(listener)

    def select(self, channel: Channel) -> Channel:
        """Make *channel* active without checking it belongs to any view."""

        self._active = channel
        log.debug("Selected channel %s (id=%d)", channel.name, channel.id)
        for listener in list(self._listeners):
            listener(channel)
        return channel

    def clear(self) -> None:
        self._active = None

    def rebind(self, channel: Channel) -> None:
        """Point at *channel* as the active one without notifying listeners.

        Used after a reload, when the same stream comes back with a new id.
        """

        self._active = channel
        log.debug("Rebound active channel %s to id=%d", channel.name, channel.id)

    def _index_in(self, view: Sequence[Channel]) -> int:
        assert self._active is not None
        active = self._active
        for index, channel in enumerate(view):
            # A channel from an earlier parse may share an id with an unrelated one.
            if channel == active:
                return index
        return -1

    def next(self, view: Sequence[Channel]) -> Optional[Channel]:
        """Select the channel after the active one, wrapping to the start."""

        if self._active is None or not view:
            return None
        index = self._index_in(view)
        return self.select(view[(index + 1) % len(view)])

    def previous(self, view: Sequence[Channel]) -> Optional[Channel]:
        """Select the channel before the active one, wrapping to the end."""

        if self._active is None or not view:
            return None
        index = self._index_in(view)
        if index < 0:
            # An active channel outside the view steps back onto the last entry.
            index = 0
        return self.select(view[(index - 1 + len(view)) % len(view)])


__all__ = ["SelectionNavigator", "SelectionListener"]
