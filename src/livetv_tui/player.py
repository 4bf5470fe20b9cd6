"""Playback engine boundary: player detection, launch and mpv IPC events."""
from __future__ import annotations

import asyncio
import json
import os
import shutil
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence
from uuid import uuid4

from .config import EngineOptions
from .logging_utils import get_logger
from .playback import (
    EngineError,
    ErrorKind,
    ManifestReady,
    Paused,
    PlaybackEvent,
    Resumed,
    Stalled,
)
from .playlist import Channel
from .stats import StreamStats, StreamStatsAccumulator

PREFERRED_PLAYER_DEFAULT = "mpv"

DEFAULT_PLAYER_CANDIDATES: Sequence[str] = ("mpv", "vlc", "ffplay")

PLAYER_PROBE_TIMEOUT_ENV = "LIVETV_TUI_PLAYER_PROBE_TIMEOUT"
DEFAULT_PLAYER_PROBE_TIMEOUT = 10.0

_NETWORK_HINTS = (
    "network",
    "http",
    "connection",
    "connect",
    "timed out",
    "timeout",
    "refused",
    "resolve",
    "loading failed",
    "reconnect",
    "403",
    "404",
)
_MEDIA_HINTS = (
    "format",
    "decod",
    "codec",
    "demux",
    "no audio or video",
    "unsupported",
    "init failed",
    "corrupt",
)

# Properties observed over mpv's IPC socket, keyed by observer id.
_OBSERVED_PROPERTIES: Mapping[int, str] = {
    1: "pause",
    2: "paused-for-cache",
    3: "demuxer-cache-duration",
    4: "video-bitrate",
    5: "video-params",
}

log = get_logger(__name__)


@dataclass(slots=True)
class PlayerCommand:
    """Describe a player invocation."""

    executable: str
    args: list[str]
    ipc_path: Optional[str] = None
    cleanup_paths: tuple[Path, ...] = ()

    def as_sequence(self) -> list[str]:
        return [self.executable, *self.args]


@dataclass(slots=True)
class PlayerHandle:
    """Return value from :func:`launch_player` containing process metadata."""

    process: asyncio.subprocess.Process
    command: PlayerCommand


def detect_player(
    preferred: Optional[str] = None,
    *,
    candidates: Iterable[str] = DEFAULT_PLAYER_CANDIDATES,
) -> Optional[str]:
    """Return the path to the first available player executable."""

    search_order: list[str] = []
    if preferred:
        search_order.append(str(preferred))
    for candidate in candidates:
        if candidate not in search_order:
            search_order.append(candidate)
    for executable in search_order:
        path = shutil.which(executable)
        if path:
            log.info("Selected player executable: %s (from candidate %s)", path, executable)
            return path
        log.debug("Player candidate %s not found on PATH", executable)
    return None


def _prepare_mpv_ipc() -> tuple[Optional[str], tuple[Path, ...]]:
    """Return an IPC path suitable for mpv along with cleanup targets."""

    if os.name == "nt":
        return rf"\\.\pipe\livetv_tui_{uuid4().hex}", ()

    temp_dir = Path(tempfile.mkdtemp(prefix="livetv_tui_mpv_"))
    ipc_path = temp_dir / "ipc.sock"
    return str(ipc_path), (temp_dir,)


def _player_probe_timeout() -> float:
    raw_value = os.getenv(PLAYER_PROBE_TIMEOUT_ENV)
    if raw_value is None:
        return DEFAULT_PLAYER_PROBE_TIMEOUT
    try:
        timeout = float(raw_value)
    except ValueError:
        log.warning(
            "Invalid %s value %r; using default %.1f seconds",
            PLAYER_PROBE_TIMEOUT_ENV,
            raw_value,
            DEFAULT_PLAYER_PROBE_TIMEOUT,
        )
        return DEFAULT_PLAYER_PROBE_TIMEOUT
    if timeout <= 0:
        log.warning(
            "Probe timeout %.1f from %s must be positive; using default",
            timeout,
            PLAYER_PROBE_TIMEOUT_ENV,
        )
        return DEFAULT_PLAYER_PROBE_TIMEOUT
    return timeout


def mpv_engine_flags(
    options: EngineOptions, *, user_agent: Optional[str] = None
) -> list[str]:
    """Translate buffering options into mpv command line flags."""

    flags = [
        "--cache=yes",
        f"--cache-secs={options.buffer_ahead_seconds}",
        f"--demuxer-readahead-secs={options.buffer_ahead_seconds}",
        f"--demuxer-max-bytes={options.max_buffer_bytes}",
        f"--network-timeout={options.network_timeout_seconds}",
        "--stream-lavf-o="
        "reconnect=1,reconnect_streamed=1,reconnect_on_network_error=1,"
        f"reconnect_max_retries={options.reconnect_attempts}",
    ]
    if options.low_latency:
        flags.append("--profile=low-latency")
    if user_agent:
        flags.append(f"--user-agent={user_agent}")
    return flags


def build_player_command(
    channel: Channel,
    *,
    preferred: Optional[str] = None,
    options: Optional[EngineOptions] = None,
    user_agent: Optional[str] = None,
) -> PlayerCommand:
    """Construct a player command for the given channel."""

    executable = detect_player(preferred)
    if executable is None:
        log.error("Unable to locate supported media player")
        raise RuntimeError("No supported media player found (mpv, vlc, ffplay)")
    args: list[str] = []
    cleanup_paths: tuple[Path, ...] = ()
    ipc_path: Optional[str] = None
    if Path(executable).name.lower() in {"mpv", "mpv.exe"}:
        ipc_path, cleanup_paths = _prepare_mpv_ipc()
        args.extend(
            [
                "--force-window=immediate",
                "--player-operation-mode=pseudo-gui",
                "--no-terminal",
                f"--title={channel.name}",
            ]
        )
        args.extend(mpv_engine_flags(options or EngineOptions(), user_agent=user_agent))
        if ipc_path:
            args.append(f"--input-ipc-server={ipc_path}")
    command = PlayerCommand(
        executable=executable,
        args=[*args, channel.url],
        ipc_path=ipc_path,
        cleanup_paths=cleanup_paths,
    )
    log.info("Built player command for channel %s: %s", channel.name, command.as_sequence())
    return command


async def launch_player(
    channel: Channel,
    *,
    preferred: Optional[str] = None,
    options: Optional[EngineOptions] = None,
    user_agent: Optional[str] = None,
) -> PlayerHandle:
    """Launch a media player for the channel."""

    command = build_player_command(
        channel, preferred=preferred, options=options, user_agent=user_agent
    )
    log.info("Launching player process for %s", channel.name)
    process = await asyncio.create_subprocess_exec(
        *command.as_sequence(),
        env=os.environ.copy(),
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
    )
    log.debug("Spawned process PID %s", getattr(process, "pid", "unknown"))
    return PlayerHandle(process=process, command=command)


def probe_player(preferred: Optional[str] = None) -> str:
    """Invoke the preferred player with ``--version`` to verify availability."""

    executable = detect_player(preferred)
    if executable is None:
        raise RuntimeError("No supported media player found (mpv, vlc, ffplay)")
    timeout = _player_probe_timeout()
    try:
        result = subprocess.run(
            [executable, "--version"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise RuntimeError(
            f"{Path(executable).name} --version timed out after {timeout:.1f} seconds. "
            f"Increase the timeout via the {PLAYER_PROBE_TIMEOUT_ENV} environment variable."
        ) from exc
    except (OSError, subprocess.SubprocessError) as exc:  # pragma: no cover - defensive
        raise RuntimeError(f"Player probe failed: {exc}") from exc
    if result.returncode != 0:
        output = result.stderr.strip() or result.stdout.strip()
        raise RuntimeError(
            f"{Path(executable).name} --version exited with {result.returncode}: {output}"
        )
    output = result.stdout.strip() or result.stderr.strip()
    summary = output.splitlines()[0] if output else Path(executable).name
    log.info("Player probe succeeded using %s: %s", executable, summary)
    return summary


def classify_error(text: str) -> ErrorKind:
    """Guess whether an engine error message is network or media related."""

    lowered = text.lower()
    if any(hint in lowered for hint in _NETWORK_HINTS):
        return ErrorKind.NETWORK
    if any(hint in lowered for hint in _MEDIA_HINTS):
        return ErrorKind.MEDIA
    return ErrorKind.OTHER


class MpvEventTranslator:
    """Turn mpv IPC messages into playback events and stream statistics.

    Property values are reported once on subscription, so property changes
    are ignored until the file is loaded and only actual changes produce
    events.
    """

    __slots__ = ("_started", "_properties", "stats")

    def __init__(self) -> None:
        self._started = False
        self._properties: dict[str, Any] = {}
        self.stats = StreamStatsAccumulator()

    def translate(self, payload: Mapping[str, Any]) -> Optional[PlaybackEvent]:
        event = payload.get("event")
        if event in {"file-loaded", "playback-restart"}:
            self._started = True
            return ManifestReady()
        if event == "end-file":
            reason = payload.get("reason")
            if reason == "error":
                detail = str(payload.get("file_error") or "unknown error")
                return EngineError(fatal=True, kind=classify_error(detail), detail=detail)
            if reason in {"eof", "stop", "quit"}:
                return Paused()
            return None
        if event == "log-message":
            if payload.get("level") not in {"warn", "error"}:
                return None
            detail = f"{payload.get('prefix', '')}: {str(payload.get('text', '')).strip()}"
            return EngineError(fatal=False, kind=classify_error(detail), detail=detail)
        if event == "property-change":
            return self._property_change(payload.get("name"), payload.get("data"))
        return None

    def _property_change(self, name: Any, data: Any) -> Optional[PlaybackEvent]:
        if name == "demuxer-cache-duration" and isinstance(data, (int, float)):
            self.stats.set_buffer(float(data))
            return None
        if name == "video-bitrate" and isinstance(data, (int, float)):
            self.stats.push_bitrate(float(data))
            return None
        if name == "video-params" and isinstance(data, dict):
            self.stats.set_resolution(data.get("w"), data.get("h"))
            return None
        if name not in {"pause", "paused-for-cache"} or not isinstance(data, bool):
            return None
        previous = self._properties.get(name)
        self._properties[name] = data
        if not self._started or previous is None or previous == data:
            return None
        if name == "paused-for-cache":
            return Stalled() if data else Resumed()
        return Paused() if data else Resumed()


EventSink = Callable[[int, PlaybackEvent], None]
StatsSink = Callable[[int, StreamStats], None]


class PlaybackEngine:
    """Own at most one player attachment and report its lifecycle events.

    Every attachment receives a new id; events are delivered to *on_event*
    together with that id so consumers can drop events that arrive after the
    attachment was replaced.
    """

    def __init__(
        self,
        *,
        on_event: EventSink,
        on_stats: Optional[StatsSink] = None,
        preferred_player: Optional[str] = None,
        options: Optional[EngineOptions] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self._on_event = on_event
        self._on_stats = on_stats
        self._preferred_player = preferred_player
        self._options = options or EngineOptions()
        self._user_agent = user_agent
        self._counter = 0
        self._active_id: Optional[int] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._monitor: Optional[asyncio.Task[None]] = None
        self._handle: Optional[PlayerHandle] = None
        self._ipc_writer: Optional[asyncio.StreamWriter] = None

    @property
    def active_attachment(self) -> Optional[int]:
        return self._active_id

    @property
    def handle(self) -> Optional[PlayerHandle]:
        return self._handle

    def attach(self, channel: Channel) -> int:
        """Tear down the current attachment and start playing *channel*."""

        self.detach()
        self._counter += 1
        attachment = self._counter
        self._active_id = attachment
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(attachment, channel))
        log.info("Attachment %d started for %s", attachment, channel.name)
        return attachment

    def detach(self) -> None:
        """Stop the current player, if any, without emitting further events."""

        if self._active_id is None:
            return
        log.info("Detaching attachment %d", self._active_id)
        self._active_id = None
        self._ipc_writer = None
        if self._monitor is not None:
            self._monitor.cancel()
            self._monitor = None
        if self._task is not None:
            self._task.cancel()
            self._task = None
        handle = self._handle
        self._handle = None
        if handle is not None:
            if handle.process.returncode is None:
                try:
                    handle.process.terminate()
                except ProcessLookupError:  # pragma: no cover - already gone
                    pass
            _cleanup_paths(handle.command.cleanup_paths)

    def toggle_pause(self) -> bool:
        """Ask mpv to flip its pause state; False when no IPC link is open.

        The resulting ``pause`` property change arrives as a regular event.
        """

        writer = self._ipc_writer
        if writer is None or writer.is_closing():
            return False
        self._send_command(writer, ["cycle", "pause"])
        log.info("Toggled pause on attachment %s", self._active_id)
        return True

    async def shutdown(self) -> None:
        task = self._task
        self.detach()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _emit(self, attachment: int, event: PlaybackEvent) -> None:
        if attachment != self._active_id:
            log.debug("Dropping %s from superseded attachment %d", type(event).__name__, attachment)
            return
        self._on_event(attachment, event)

    def _emit_stats(self, attachment: int, stats: StreamStats) -> None:
        if self._on_stats is not None and attachment == self._active_id:
            self._on_stats(attachment, stats)

    async def _run(self, attachment: int, channel: Channel) -> None:
        try:
            handle = await launch_player(
                channel,
                preferred=self._preferred_player,
                options=self._options,
                user_agent=self._user_agent,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.error("Failed to launch player for %s: %s", channel.name, exc)
            self._emit(attachment, EngineError(fatal=True, kind=ErrorKind.OTHER, detail=str(exc)))
            return
        if attachment != self._active_id:
            try:
                handle.process.terminate()
            except ProcessLookupError:  # pragma: no cover - already gone
                pass
            _cleanup_paths(handle.command.cleanup_paths)
            return
        self._handle = handle
        if handle.command.ipc_path and sys.platform != "win32":
            self._monitor = asyncio.get_running_loop().create_task(
                self._monitor_ipc(attachment, handle.command.ipc_path)
            )
        else:
            # Players without IPC only tell us they started and when they exit.
            self._emit(attachment, ManifestReady())
        try:
            returncode = await handle.process.wait()
        except asyncio.CancelledError:
            log.info("Player task cancelled for %s", channel.name)
            raise
        log.info("Player exited with code %s for %s", returncode, channel.name)
        if returncode not in (None, 0):
            detail = f"player exited with code {returncode}"
            self._emit(attachment, EngineError(fatal=True, kind=ErrorKind.OTHER, detail=detail))
        else:
            self._emit(attachment, Paused())

    @staticmethod
    def _send_command(writer: asyncio.StreamWriter, command: list[Any]) -> None:
        writer.write((json.dumps({"command": command}) + "\n").encode("utf-8"))

    async def _connect_ipc(
        self, ipc_path: str, retries: int = 50, delay: float = 0.1
    ) -> Optional[tuple[asyncio.StreamReader, asyncio.StreamWriter]]:
        for attempt in range(retries):
            try:
                return await asyncio.open_unix_connection(ipc_path)
            except (FileNotFoundError, ConnectionRefusedError):
                await asyncio.sleep(delay)
            except OSError as exc:
                log.debug(
                    "Attempt %s to connect to mpv IPC at %s failed: %s",
                    attempt + 1,
                    ipc_path,
                    exc,
                )
                await asyncio.sleep(delay)
        log.warning("Unable to connect to mpv IPC server at %s", ipc_path)
        return None

    async def _monitor_ipc(self, attachment: int, ipc_path: str) -> None:
        connection = await self._connect_ipc(ipc_path)
        if connection is None:
            return
        reader, writer = connection
        if attachment != self._active_id:
            writer.close()
            return
        self._ipc_writer = writer
        translator = MpvEventTranslator()
        try:
            commands: list[list[Any]] = [["request_log_messages", "warn"]]
            commands.extend(
                ["observe_property", observer, name]
                for observer, name in _OBSERVED_PROPERTIES.items()
            )
            for command in commands:
                self._send_command(writer, command)
            await writer.drain()
            while True:
                line = await reader.readline()
                if not line:
                    break
                try:
                    payload = json.loads(line.decode("utf-8"))
                except (json.JSONDecodeError, UnicodeDecodeError):
                    continue
                if not isinstance(payload, dict):
                    continue
                event = translator.translate(payload)
                if event is not None:
                    self._emit(attachment, event)
                elif payload.get("event") == "property-change":
                    self._emit_stats(attachment, translator.stats.snapshot())
        except asyncio.CancelledError:
            raise
        except Exception:  # pragma: no cover - monitoring errors are logged
            log.exception("Error while monitoring mpv IPC at %s", ipc_path)
        finally:
            if self._ipc_writer is writer:
                self._ipc_writer = None
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:  # pragma: no cover - cleanup best-effort
                pass


def _cleanup_paths(paths: Iterable[Path]) -> None:
    for path in paths:
        try:
            if path.is_dir():
                shutil.rmtree(path, ignore_errors=True)
            elif path.exists():
                path.unlink()
        except OSError:  # pragma: no cover - cleanup best-effort
            log.debug("Failed to remove %s", path, exc_info=True)


__all__ = [
    "DEFAULT_PLAYER_CANDIDATES",
    "PREFERRED_PLAYER_DEFAULT",
    "MpvEventTranslator",
    "PlaybackEngine",
    "PlayerCommand",
    "PlayerHandle",
    "build_player_command",
    "classify_error",
    "detect_player",
    "launch_player",
    "mpv_engine_flags",
    "probe_player",
]
