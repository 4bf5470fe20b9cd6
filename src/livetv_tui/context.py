"""Application context owning catalog, selection and playback state."""
from __future__ import annotations

from typing import Optional, Sequence

from .catalog import ALL_CATEGORIES, CatalogView, ChannelCatalog
from .logging_utils import get_logger
from .navigation import SelectionListener, SelectionNavigator
from .playback import (
    ChannelAssigned,
    PlaybackEvent,
    PlaybackState,
    PlaybackStateTracker,
    StateListener,
)
from .playlist import Channel, PlaylistInput, parse_playlist

log = get_logger(__name__)


class AppContext:
    """Single owner of the state the UI renders.

    All mutations happen through these methods on the UI event loop, one
    event at a time.
    """

    def __init__(self, *, category: str = ALL_CATEGORIES) -> None:
        self.catalog = ChannelCatalog(category=category)
        self.navigator = SelectionNavigator()
        self.tracker = PlaybackStateTracker()
        self.loading = False
        self.load_error: Optional[str] = None
        self.navigator.add_listener(self._on_selected)

    @property
    def view(self) -> CatalogView:
        return self.catalog.view

    @property
    def active_channel(self) -> Optional[Channel]:
        return self.navigator.active

    @property
    def playback_state(self) -> PlaybackState:
        return self.tracker.state

    def add_selection_listener(self, listener: SelectionListener) -> None:
        self.navigator.add_listener(listener)

    def add_state_listener(self, listener: StateListener) -> None:
        self.tracker.add_listener(listener)

    def begin_loading(self) -> None:
        self.loading = True
        self.load_error = None

    def load_playlist_text(self, text: PlaylistInput) -> Sequence[Channel]:
        """Parse *text* and replace the catalog with its channels."""

        channels = parse_playlist(text)
        self.catalog.set_channels(channels)
        self.loading = False
        self.load_error = None
        self._rebind_active()
        return self.catalog.channels

    def _rebind_active(self) -> None:
        # Ids are only meaningful within one parse; the url identifies the stream.
        active = self.navigator.active
        if active is None:
            return
        for channel in self.catalog.channels:
            if channel.url == active.url:
                self.navigator.rebind(channel)
                return
        # It stays active so next/previous start from the top of the new view.
        log.info("Active channel %s is not in the reloaded playlist", active.name)

    def fail_loading(self, message: str) -> None:
        """Record a failed fetch; the catalog is left empty."""

        self.catalog.clear()
        self.loading = False
        self.load_error = message
        log.error("Playlist could not be loaded: %s", message)

    def set_search_term(self, term: str) -> CatalogView:
        return self.catalog.set_search_term(term)

    def set_category(self, category: str) -> CatalogView:
        return self.catalog.set_category(category)

    def select(self, channel: Channel) -> Channel:
        return self.navigator.select(channel)

    def next_channel(self) -> Optional[Channel]:
        return self.navigator.next(self.view.channels)

    def previous_channel(self) -> Optional[Channel]:
        return self.navigator.previous(self.view.channels)

    def handle_engine_event(self, event: PlaybackEvent) -> PlaybackState:
        return self.tracker.handle(event)

    def _on_selected(self, channel: Channel) -> None:
        self.tracker.handle(ChannelAssigned(url=channel.url))


__all__ = ["AppContext"]
