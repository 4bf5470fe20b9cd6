import pytest

from livetv_tui.stats import StreamStats, StreamStatsAccumulator, format_bitrate


def test_format_bitrate_formats_units() -> None:
    assert format_bitrate(4_200_000) == "4.20 Mbps"
    assert format_bitrate(1200) == "1.2 Kbps"
    assert format_bitrate(640) == "640 bps"
    assert format_bitrate(None) == "-"
    assert format_bitrate(0) == "-"


def test_quality_label() -> None:
    assert StreamStats(height=1080).quality == "1080p"
    assert StreamStats().quality is None


def test_stream_stats_accumulator_tracks_average() -> None:
    accumulator = StreamStatsAccumulator()
    snapshot = accumulator.push_bitrate(2_000_000)
    assert snapshot.live_bitrate == 2_000_000
    assert snapshot.average_bitrate == pytest.approx(2_000_000)

    snapshot = accumulator.push_bitrate(4_000_000)
    assert snapshot.live_bitrate == 4_000_000
    assert snapshot.average_bitrate == pytest.approx(3_000_000)

    snapshot = accumulator.push_bitrate(0)
    assert snapshot.average_bitrate == pytest.approx(3_000_000)

    snapshot = accumulator.set_resolution(1920, 1080)
    assert snapshot.width == 1920
    assert snapshot.height == 1080


def test_accumulator_ignores_invalid_samples_and_resets() -> None:
    accumulator = StreamStatsAccumulator()
    assert accumulator.set_buffer(-1).buffer_seconds is None
    assert accumulator.set_buffer(7.5).buffer_seconds == 7.5
    assert accumulator.set_resolution(None, 0).height is None
    accumulator.reset()
    assert accumulator.snapshot() == StreamStats()
