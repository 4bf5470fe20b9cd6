"""Command line entry point for livetv-tui."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterable

from . import __version__
from .app import LiveTVApp
from .catalog import ALL_CATEGORIES, build_view
from .config import CONFIG_PATH, AppConfig, load_config
from .logging_utils import configure_logging, get_logger
from .player import PREFERRED_PLAYER_DEFAULT
from .playlist import PlaylistError, load_playlist
from .themes import CUSTOM_THEMES

log = get_logger(__name__)


def _sorted_theme_names() -> list[str]:
    """Return the bundled theme catalog in a consistent order."""

    return sorted(CUSTOM_THEMES)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live TV playlist browser and player")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_PATH,
        help="Path to configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "--playlist",
        default=None,
        help="Playlist URL or local path overriding the configured playlist_url",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LIVETV_TUI_LOG_LEVEL for this invocation",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write logs to this file instead of the default or LIVETV_TUI_LOG_FILE",
    )
    parser.add_argument(
        "--player",
        dest="preferred_player",
        default=None,
        help=(
            f"Preferred media player executable to launch (default: {PREFERRED_PLAYER_DEFAULT};"
            " falls back to auto-detect)"
        ),
    )
    theme_names = ", ".join(_sorted_theme_names())
    parser.add_argument(
        "--theme",
        default=None,
        help=f"Select the application theme. Available options: {theme_names}.",
    )
    parser.add_argument(
        "--list-themes",
        action="store_true",
        help="List available themes and exit.",
    )
    parser.add_argument(
        "--list-channels",
        action="store_true",
        help="Print the playlist as group<TAB>name<TAB>url lines and exit.",
    )
    parser.add_argument(
        "--search",
        default="",
        help="Only list channels whose name contains this text (with --list-channels)",
    )
    parser.add_argument(
        "--category",
        default=ALL_CATEGORIES,
        help="Only list channels in this group (with --list-channels)",
    )
    return parser.parse_args(argv)


def _print_channels(
    config: AppConfig, source: str, *, search: str, category: str
) -> int:
    """Fetch *source* and write the filtered catalog to stdout."""

    try:
        channels = load_playlist(source, user_agent=config.user_agent)
    except PlaylistError as exc:
        log.error("Unable to load playlist: %s", exc)
        print(f"Unable to load playlist: {exc}")
        return 1
    view = build_view(channels, search_term=search, category=category)
    for channel in view.channels:
        print(f"{channel.group}\t{channel.name}\t{channel.url}")
    return 0


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    if args.list_themes:
        for theme_name in _sorted_theme_names():
            print(theme_name)
        return
    configure_logging(
        level=args.log_level,
        log_file=str(args.log_file) if args.log_file is not None else None,
    )
    log.info("CLI invoked with config=%s", args.config)
    config = load_config(args.config)
    source = args.playlist or config.playlist_url

    if args.list_channels:
        status = _print_channels(
            config, source, search=args.search, category=args.category
        )
        if status:
            raise SystemExit(status)
        return

    app = LiveTVApp(
        config,
        config_path=args.config,
        preferred_player=args.preferred_player,
        theme=args.theme,
        playlist_source=source,
    )
    log.info("Launching Textual application")
    try:
        app.run()
    except KeyboardInterrupt:
        log.info("Keyboard interrupt received; exiting application")
        if app.is_running:
            app.exit()
        raise SystemExit(130) from None


if __name__ == "__main__":  # pragma: no cover
    main()
