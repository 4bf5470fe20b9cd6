"""Tests for the playback state machine."""
from __future__ import annotations

import pytest

from livetv_tui.playback import (
    ChannelAssigned,
    EngineError,
    ErrorKind,
    ManifestReady,
    Paused,
    PlaybackState,
    PlaybackStateTracker,
    Resumed,
    Stalled,
    transition,
)

ALL_STATES = list(PlaybackState)


@pytest.mark.parametrize("state", ALL_STATES)
def test_channel_assigned_always_loads(state: PlaybackState) -> None:
    assert transition(state, ChannelAssigned()) is PlaybackState.LOADING


@pytest.mark.parametrize(
    "event",
    [ManifestReady(), Stalled(), Resumed(), Paused(), EngineError(fatal=True)],
)
def test_error_is_sticky(event) -> None:
    assert transition(PlaybackState.ERROR, event) is PlaybackState.ERROR


@pytest.mark.parametrize(
    ("state", "event", "expected"),
    [
        (PlaybackState.LOADING, ManifestReady(), PlaybackState.PLAYING),
        (PlaybackState.PLAYING, Stalled(), PlaybackState.BUFFERING),
        (PlaybackState.BUFFERING, Resumed(), PlaybackState.PLAYING),
        (PlaybackState.PLAYING, Paused(), PlaybackState.IDLE),
        (PlaybackState.LOADING, EngineError(fatal=True), PlaybackState.ERROR),
        (PlaybackState.IDLE, Stalled(), PlaybackState.BUFFERING),
    ],
)
def test_transitions(state, event, expected) -> None:
    assert transition(state, event) is expected


@pytest.mark.parametrize("state", [s for s in ALL_STATES if s is not PlaybackState.ERROR])
def test_non_fatal_error_keeps_state(state: PlaybackState) -> None:
    assert transition(state, EngineError(fatal=False, kind=ErrorKind.NETWORK)) is state


def test_error_messages_by_kind() -> None:
    assert "Network" in EngineError(fatal=True, kind=ErrorKind.NETWORK).message
    assert "decoded" in EngineError(fatal=True, kind=ErrorKind.MEDIA).message
    assert EngineError(fatal=True).message == "Playback failed."


def test_tracker_reports_changes_only() -> None:
    tracker = PlaybackStateTracker()
    changes: list[tuple[PlaybackState, PlaybackState]] = []
    tracker.add_listener(lambda previous, current: changes.append((previous, current)))

    tracker.handle(ChannelAssigned(url="http://a"))
    tracker.handle(ManifestReady())
    tracker.handle(ManifestReady())
    tracker.handle(EngineError(fatal=False))
    tracker.handle(Stalled())
    tracker.handle(Resumed())

    assert changes == [
        (PlaybackState.IDLE, PlaybackState.LOADING),
        (PlaybackState.LOADING, PlaybackState.PLAYING),
        (PlaybackState.PLAYING, PlaybackState.BUFFERING),
        (PlaybackState.BUFFERING, PlaybackState.PLAYING),
    ]


def test_tracker_keeps_first_fatal_error_until_new_channel() -> None:
    tracker = PlaybackStateTracker()
    tracker.handle(ChannelAssigned())
    first = EngineError(fatal=True, kind=ErrorKind.NETWORK, detail="refused")
    tracker.handle(first)
    tracker.handle(EngineError(fatal=True, kind=ErrorKind.MEDIA))
    tracker.handle(ManifestReady())

    assert tracker.state is PlaybackState.ERROR
    assert tracker.error is first
    assert tracker.error_message == first.message

    tracker.handle(ChannelAssigned())
    assert tracker.state is PlaybackState.LOADING
    assert tracker.error is None
    assert tracker.error_message is None


def test_tracker_reassigning_while_loading_does_not_notify() -> None:
    tracker = PlaybackStateTracker()
    changes: list[PlaybackState] = []
    tracker.add_listener(lambda _previous, current: changes.append(current))
    tracker.handle(ChannelAssigned())
    tracker.handle(ChannelAssigned())
    assert changes == [PlaybackState.LOADING]
