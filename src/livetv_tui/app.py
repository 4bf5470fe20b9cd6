"""Textual application for browsing a playlist and watching channels."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

try:
    from textual import on
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Horizontal, Vertical
    from textual.message import Message
    from textual.reactive import reactive
    from textual.widgets import Footer, Header, Input, Label, ListItem, ListView, Static
except ModuleNotFoundError as exc:  # pragma: no cover - dependency guard
    raise ModuleNotFoundError(
        "The 'textual' package is required to run livetv_tui. "
        "Install dependencies with 'pip install -e .[dev]' or 'pip install livetv-tui'."
    ) from exc

from rich.markup import escape

from .catalog import ALL_CATEGORIES
from .config import CONFIG_PATH, AppConfig, save_config
from .context import AppContext
from .log_viewer import LogViewer
from .logging_utils import detach_stream_handler, get_logger
from .playback import Paused, PlaybackEvent, PlaybackState
from .player import PREFERRED_PLAYER_DEFAULT, PlaybackEngine, probe_player
from .playlist import Channel, fetch_playlist_text
from .stats import StreamStats, format_bitrate
from .themes import CUSTOM_THEMES, DEFAULT_THEME_NAME

log = get_logger(__name__)

STATE_STYLES: dict[PlaybackState, tuple[str, str]] = {
    PlaybackState.IDLE: ("Idle", "dim"),
    PlaybackState.LOADING: ("Loading", "yellow"),
    PlaybackState.PLAYING: ("Live", "bold red"),
    PlaybackState.BUFFERING: ("Buffering", "magenta"),
    PlaybackState.ERROR: ("Error", "bold red"),
}


class EngineEventPosted(Message):
    """An engine event travelling from the player task to the app."""

    def __init__(self, attachment: int, event: PlaybackEvent) -> None:
        super().__init__()
        self.attachment = attachment
        self.event = event


class EngineStatsPosted(Message):
    """A statistics snapshot for the current attachment."""

    def __init__(self, attachment: int, stats: StreamStats) -> None:
        super().__init__()
        self.attachment = attachment
        self.stats = stats


class ChannelListItem(ListItem):
    """Render a channel with its group."""

    def __init__(self, channel: Channel) -> None:
        super().__init__(
            Label(f"{escape(channel.name)} [dim]{escape(channel.group)}[/dim]", markup=True)
        )
        self.channel = channel


class CategoryListItem(ListItem):
    def __init__(self, category: str) -> None:
        label = "All channels" if category == ALL_CATEGORIES else category
        super().__init__(Label(label, markup=False))
        self.category = category


class NowPlaying(Static):
    """Summary of the active channel and its playback state."""

    channel: reactive[Optional[Channel]] = reactive(None)
    state: reactive[PlaybackState] = reactive(PlaybackState.IDLE)
    error_message: reactive[Optional[str]] = reactive(None)
    stats: reactive[Optional[StreamStats]] = reactive(None)

    def on_mount(self) -> None:
        self._refresh_summary()

    def watch_channel(self, _: Optional[Channel]) -> None:
        self._refresh_summary()

    def watch_state(self, _: PlaybackState) -> None:
        self._refresh_summary()

    def watch_error_message(self, _: Optional[str]) -> None:
        self._refresh_summary()

    def watch_stats(self, _: Optional[StreamStats]) -> None:
        self._refresh_summary()

    def _refresh_summary(self) -> None:
        if self.channel is None:
            self.update("Ready to stream.\nSelect a channel from the list to start playback.")
            return
        label, style = STATE_STYLES[self.state]
        lines = [
            f"[b]{escape(self.channel.name)}[/b] • {escape(self.channel.group)}",
            f"[{style}]{label}[/]",
        ]
        if self.state is PlaybackState.ERROR and self.error_message:
            lines.append(f"[red]{escape(self.error_message)}[/red]")
        if self.stats is not None:
            lines.extend(self._format_stats(self.stats))
        lines.append(f"[dim]{escape(self.channel.url)}[/dim]")
        self.update("\n".join(lines))

    @staticmethod
    def _format_stats(stats: StreamStats) -> list[str]:
        details: list[str] = []
        if stats.buffer_seconds is not None:
            details.append(f"Buffer: {stats.buffer_seconds:.1f} s")
        if stats.live_bitrate is not None:
            details.append(f"Bitrate: {format_bitrate(stats.live_bitrate)}")
        if stats.quality is not None:
            details.append(f"Quality: {stats.quality}")
        return details


class StatusBar(Static):
    status: reactive[str] = reactive("")

    def watch_status(self, status: str) -> None:
        self.update(escape(status))


_INLINE_DEFAULT_CSS = """
#browser {
    height: 1fr;
}

#sidebar {
    width: 2fr;
    min-width: 36;
    padding: 0 1;
}

#category-list {
    height: 10;
    border: heavy $surface;
}

#channel-list {
    height: 1fr;
    border: heavy $surface;
}

#player-pane {
    width: 3fr;
    padding: 0 1;
}

#now-playing {
    border: heavy $surface;
    padding: 1;
    min-height: 8;
}

#log-viewer {
    border: heavy $surface;
    padding: 0 1;
    height: 1fr;
    overflow-y: auto;
}

StatusBar {
    padding: 0 1;
}
"""


class LiveTVApp(App[None]):
    """Main Textual application."""

    CSS = _INLINE_DEFAULT_CSS
    TITLE = "Live TV"
    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("q", "quit", "Quit"),
        Binding("/", "focus_search", "Search"),
        Binding("escape", "clear_search", "Clear search"),
        Binding("n", "next_channel", "Next"),
        Binding("p", "previous_channel", "Previous"),
        Binding("space", "toggle_pause", "Pause"),
        Binding("s", "stop_playback", "Stop"),
        Binding("r", "reload_playlist", "Reload"),
        Binding("d", "toggle_diagnostics", "Diagnostics"),
        Binding("v", "probe_player", "Probe player"),
    ]

    def __init__(
        self,
        config: AppConfig,
        *,
        config_path: Optional[Path] = None,
        preferred_player: Optional[str] = None,
        theme: Optional[str] = None,
        playlist_source: Optional[str] = None,
    ) -> None:
        super().__init__()
        for custom_theme in CUSTOM_THEMES.values():
            self.register_theme(custom_theme)
        self._apply_requested_theme(theme or config.theme)
        self._config = config
        self._config_path = config_path or CONFIG_PATH
        self._playlist_source = playlist_source or config.playlist_url
        self.context = AppContext(category=config.last_category or ALL_CATEGORIES)
        self.context.add_selection_listener(self._on_channel_selected)
        self.context.add_state_listener(self._on_state_changed)
        self._preferred_player = (
            preferred_player or config.preferred_player or PREFERRED_PLAYER_DEFAULT
        )
        self._engine = PlaybackEngine(
            on_event=self._post_engine_event,
            on_stats=self._post_engine_stats,
            preferred_player=self._preferred_player,
            options=config.engine,
            user_agent=config.user_agent,
        )
        log.info("LiveTVApp initialized; playlist source=%s", self._playlist_source)

    def _apply_requested_theme(self, requested: Optional[str]) -> None:
        preferred = requested or DEFAULT_THEME_NAME
        if self.get_theme(preferred) is None:
            log.warning(
                "Requested theme '%s' is unavailable; falling back to %s",
                requested,
                DEFAULT_THEME_NAME,
            )
            preferred = DEFAULT_THEME_NAME
        self.theme = preferred

    @property
    def engine(self) -> PlaybackEngine:
        return self._engine

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="browser"):
            with Vertical(id="sidebar"):
                yield Input(placeholder="Search channels…", id="search")
                yield ListView(id="category-list")
                yield ListView(id="channel-list")
            with Vertical(id="player-pane"):
                yield NowPlaying(id="now-playing")
                yield LogViewer(id="log-viewer")
        yield StatusBar(id="status")
        yield Footer()

    def on_mount(self) -> None:
        detach_stream_handler()
        self.query_one(LogViewer).display = False
        self._refresh_categories()
        self._refresh_channel_list()
        self.query_one("#channel-list", ListView).focus()
        self.action_reload_playlist()

    def _set_status(self, message: str) -> None:
        self.query_one(StatusBar).status = message

    def _refresh_categories(self) -> None:
        view = self.context.view
        list_view = self.query_one("#category-list", ListView)
        list_view.clear()
        list_view.extend(CategoryListItem(category) for category in view.categories)
        if view.category in view.categories:
            list_view.index = view.categories.index(view.category)

    def _refresh_channel_list(self) -> None:
        view = self.context.view
        list_view = self.query_one("#channel-list", ListView)
        list_view.clear()
        if not view.channels:
            if self.context.loading:
                message = "Loading channels…"
            elif self.context.load_error:
                message = "Playlist unavailable"
            else:
                message = "No channels match"
            list_view.append(ListItem(Label(message)))
            return
        list_view.extend(ChannelListItem(channel) for channel in view.channels)
        self._highlight_active_channel()

    def _highlight_active_channel(self) -> None:
        active = self.context.active_channel
        if active is None:
            return
        for index, channel in enumerate(self.context.view.channels):
            if channel.id == active.id:
                self.query_one("#channel-list", ListView).index = index
                return

    def action_reload_playlist(self) -> None:
        if self.context.loading:
            self._set_status("Playlist is already loading")
            return
        self.context.begin_loading()
        self._set_status(f"Loading playlist from {self._playlist_source}…")
        self._refresh_channel_list()
        self.run_worker(self._fetch_playlist(), name="playlist", exclusive=True)

    async def _fetch_playlist(self) -> None:
        try:
            text = await asyncio.to_thread(
                fetch_playlist_text,
                self._playlist_source,
                user_agent=self._config.user_agent,
            )
        except Exception as exc:
            log.exception("Error loading playlist from %s", self._playlist_source)
            self._handle_playlist_error(str(exc))
        else:
            self._handle_playlist_loaded(text)

    def _handle_playlist_loaded(self, text: str) -> None:
        channels = self.context.load_playlist_text(text)
        self._refresh_categories()
        self._refresh_channel_list()
        self._set_status(f"Loaded {len(channels)} channels")

    def _handle_playlist_error(self, message: str) -> None:
        self.context.fail_loading(message)
        self._refresh_categories()
        self._refresh_channel_list()
        self._set_status(f"Failed to load playlist: {message}")

    def _on_channel_selected(self, channel: Channel) -> None:
        self._engine.attach(channel)
        now_playing = self.query_one(NowPlaying)
        now_playing.stats = None
        now_playing.channel = channel
        self._highlight_active_channel()
        self._set_status(f"Tuning to {channel.name}")

    def _on_state_changed(self, previous: PlaybackState, current: PlaybackState) -> None:
        now_playing = self.query_one(NowPlaying)
        now_playing.error_message = self.context.tracker.error_message
        now_playing.state = current
        channel = self.context.active_channel
        if current is PlaybackState.ERROR and channel is not None:
            self._set_status(f"{channel.name}: {self.context.tracker.error_message}")
        elif current is PlaybackState.PLAYING and channel is not None:
            self._set_status(f"Playing {channel.name}")

    def _post_engine_event(self, attachment: int, event: PlaybackEvent) -> None:
        self.post_message(EngineEventPosted(attachment, event))

    def _post_engine_stats(self, attachment: int, stats: StreamStats) -> None:
        self.post_message(EngineStatsPosted(attachment, stats))

    @on(EngineEventPosted)
    def _on_engine_event(self, message: EngineEventPosted) -> None:
        if message.attachment != self._engine.active_attachment:
            log.debug("Ignoring event from stale attachment %d", message.attachment)
            return
        self.context.handle_engine_event(message.event)

    @on(EngineStatsPosted)
    def _on_engine_stats(self, message: EngineStatsPosted) -> None:
        if message.attachment == self._engine.active_attachment:
            self.query_one(NowPlaying).stats = message.stats

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_clear_search(self) -> None:
        search = self.query_one("#search", Input)
        if search.value:
            search.value = ""
        self.query_one("#channel-list", ListView).focus()

    def _report_no_step(self) -> None:
        if self.context.active_channel is None:
            self._set_status("Select a channel first")
        else:
            self._set_status("No channels match")

    def action_next_channel(self) -> None:
        if self.context.next_channel() is None:
            self._report_no_step()

    def action_previous_channel(self) -> None:
        if self.context.previous_channel() is None:
            self._report_no_step()

    def action_toggle_pause(self) -> None:
        if self._engine.active_attachment is None:
            self._set_status("Nothing is playing")
        elif not self._engine.toggle_pause():
            self._set_status("Pause is only available with mpv")

    def action_stop_playback(self) -> None:
        if self._engine.active_attachment is None:
            return
        self._engine.detach()
        self.context.handle_engine_event(Paused())
        self._set_status("Playback stopped")

    def action_probe_player(self) -> None:
        self._set_status(f"Probing {self._preferred_player}…")
        self.run_worker(self._probe_player(), name="probe", exclusive=True, group="probe")

    async def _probe_player(self) -> None:
        try:
            summary = await asyncio.to_thread(probe_player, self._preferred_player)
        except RuntimeError as exc:
            log.warning("Player probe failed: %s", exc)
            self._set_status(f"Player unavailable: {exc}")
        else:
            self._set_status(f"Player ready: {summary}")

    def action_toggle_diagnostics(self) -> None:
        viewer = self.query_one(LogViewer)
        viewer.display = not viewer.display

    @on(Input.Changed, "#search")
    def _on_search_changed(self, event: Input.Changed) -> None:
        self.context.set_search_term(event.value)
        self._refresh_channel_list()

    @on(ListView.Selected, "#category-list")
    def _on_category_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, CategoryListItem):
            self.context.set_category(event.item.category)
            self._refresh_channel_list()

    @on(ListView.Selected, "#channel-list")
    def _on_channel_chosen(self, event: ListView.Selected) -> None:
        if isinstance(event.item, ChannelListItem):
            self.context.select(event.item.channel)

    async def on_unmount(self) -> None:
        await self._engine.shutdown()
        category = self.context.catalog.category
        if category != (self._config.last_category or ALL_CATEGORIES):
            self._config.last_category = category
            try:
                save_config(self._config, self._config_path)
            except OSError:
                log.warning("Unable to save configuration to %s", self._config_path)


__all__ = ["LiveTVApp"]
