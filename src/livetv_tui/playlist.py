"""Parsing and loading of extended M3U playlists."""
from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union
from urllib import request
from urllib.error import HTTPError, URLError

from .logging_utils import get_logger

log = get_logger(__name__)

DEFAULT_GROUP = "General"
EXTINF_PREFIX = "#EXTINF:"
URL_PREFIX = "http"

_GROUP_PATTERN = re.compile(r'group-title="([^"]+)"', re.IGNORECASE)
_LOGO_PATTERN = re.compile(r'tvg-logo="([^"]+)"', re.IGNORECASE)

PlaylistInput = Union[str, bytes, Iterable[str]]


@dataclass(frozen=True, slots=True)
class Channel:
    """A playable channel parsed from a playlist."""

    id: int
    name: str
    group: str
    url: str
    logo: str = ""


class PlaylistError(RuntimeError):
    """Raised when a playlist cannot be fetched."""


def collation_key(text: str) -> tuple[str, str]:
    """Return a locale-style sort key: accent and case folded, then exact."""

    normalized = unicodedata.normalize("NFKD", text)
    folded = "".join(char for char in normalized if not unicodedata.combining(char))
    return folded.casefold(), text


def channel_sort_key(channel: Channel) -> tuple[tuple[str, str], tuple[str, str]]:
    return collation_key(channel.group), collation_key(channel.name)


def _extract_name(payload: str) -> Optional[str]:
    """Return the text after the last comma outside quoted attribute values."""

    in_quotes = False
    split_at = -1
    for index, char in enumerate(payload):
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            split_at = index
    if split_at < 0 or split_at == len(payload) - 1:
        return None
    return payload[split_at + 1 :].strip()


def _iter_lines(source: PlaylistInput) -> Iterable[str]:
    if isinstance(source, bytes):
        source = source.decode("utf8", errors="replace")
    if isinstance(source, str):
        return source.split("\n")
    return source


def parse_playlist(source: PlaylistInput) -> List[Channel]:
    """Parse playlist text into channels ordered by group, then name.

    ``#EXTINF`` lines update the pending group, logo and name independently;
    a field missing from a later ``#EXTINF`` line keeps the value set by an
    earlier one. Every line starting with ``http`` emits a channel and resets
    the pending metadata. Malformed input never raises, it only produces
    fewer records.
    """

    channels: List[Channel] = []
    current_group = DEFAULT_GROUP
    current_name = ""
    current_logo = ""

    for raw_line in _iter_lines(source):
        line = raw_line.strip()
        if line.startswith(EXTINF_PREFIX):
            group_match = _GROUP_PATTERN.search(line)
            logo_match = _LOGO_PATTERN.search(line)
            name = _extract_name(line[len(EXTINF_PREFIX) :])
            if group_match:
                current_group = group_match.group(1)
            if logo_match:
                current_logo = logo_match.group(1)
            if name is not None:
                current_name = name
        elif line.startswith(URL_PREFIX):
            channel = Channel(
                id=len(channels),
                name=current_name or f"Channel {len(channels) + 1}",
                group=current_group or DEFAULT_GROUP,
                url=line,
                logo=current_logo,
            )
            channels.append(channel)
            log.debug("Added channel %s (%s)", channel.name, channel.url)
            current_group = DEFAULT_GROUP
            current_name = ""
            current_logo = ""

    channels.sort(key=channel_sort_key)
    log.info("Parsed %d channels from playlist", len(channels))
    return channels


def fetch_playlist_text(
    source: str | Path,
    *,
    progress: Optional[Callable[[int, Optional[int]], None]] = None,
    user_agent: Optional[str] = None,
    timeout: float = 30.0,
) -> str:
    """Read raw playlist text from a local path or an HTTP(S) URL."""

    def report(loaded: int, total: Optional[int]) -> None:
        if progress is None:
            return
        try:
            progress(loaded, total)
        except Exception:  # pragma: no cover - diagnostic safeguard
            log.exception("Progress callback failed")

    source_str = str(source)
    log.info("Loading playlist from %s", source_str)
    chunk_size = 64_000
    data = bytearray()

    if source_str.startswith(("http://", "https://")):
        req = request.Request(source_str)
        if user_agent:
            req.add_header("User-Agent", user_agent)
        try:
            with request.urlopen(req, timeout=timeout) as response:
                total = getattr(response, "length", None)
                if total is None:
                    length_header = response.headers.get("Content-Length")
                    if length_header:
                        try:
                            total = int(length_header)
                        except ValueError:
                            total = None
                while True:
                    chunk = response.read(chunk_size)
                    if not chunk:
                        break
                    data.extend(chunk)
                    report(len(data), total)
        except HTTPError as exc:
            raise PlaylistError(f"HTTP {exc.code} while fetching {source_str}") from exc
        except (URLError, TimeoutError, OSError) as exc:
            raise PlaylistError(f"Unable to fetch {source_str}: {exc}") from exc
        report(len(data), total)
        log.debug("Downloaded playlist bytes: %d", len(data))
        return data.decode("utf8", errors="replace")

    path = Path(source).expanduser()
    if not path.exists():
        raise PlaylistError(f"Playlist path not found: {path}")
    total = path.stat().st_size
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            data.extend(chunk)
            report(len(data), total)
    report(len(data), total)
    log.debug("Read playlist file %s (%d bytes)", path, len(data))
    return data.decode("utf8", errors="replace")


def load_playlist(
    source: str | Path,
    *,
    progress: Optional[Callable[[int, Optional[int]], None]] = None,
    user_agent: Optional[str] = None,
    timeout: float = 30.0,
) -> List[Channel]:
    """Load and parse a playlist from a local path or URL."""

    text = fetch_playlist_text(
        source, progress=progress, user_agent=user_agent, timeout=timeout
    )
    return parse_playlist(text)


__all__ = [
    "Channel",
    "DEFAULT_GROUP",
    "PlaylistError",
    "channel_sort_key",
    "collation_key",
    "fetch_playlist_text",
    "load_playlist",
    "parse_playlist",
]
