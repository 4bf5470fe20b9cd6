from pathlib import Path

import pytest

from livetv_tui.playlist import (
    DEFAULT_GROUP,
    Channel,
    PlaylistError,
    collation_key,
    fetch_playlist_text,
    load_playlist,
    parse_playlist,
)


SAMPLE_PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-id="one" group-title="News",Channel One
http://example.com/stream1
#EXTINF:-1 tvg-id="two" group-title="Sports" tvg-logo="http://logo/two.png",Channel Two
http://example.com/stream2
"""


def test_parse_playlist_success():
    channels = parse_playlist(SAMPLE_PLAYLIST)
    assert [channel.name for channel in channels] == ["Channel One", "Channel Two"]
    first, second = channels
    assert first.group == "News"
    assert first.url == "http://example.com/stream1"
    assert first.logo == ""
    assert second.logo == "http://logo/two.png"


def test_parse_playlist_single_entry():
    text = '#EXTINF:-1 group-title="News" tvg-logo="http://l/1.png",CNN\nhttp://a/1.m3u8\n'
    assert parse_playlist(text) == [
        Channel(id=0, name="CNN", group="News", url="http://a/1.m3u8", logo="http://l/1.png")
    ]


def test_parse_playlist_accepts_bytes_and_lines():
    from_bytes = parse_playlist(SAMPLE_PLAYLIST.encode("utf8"))
    from_lines = parse_playlist(SAMPLE_PLAYLIST.splitlines())
    assert from_bytes == from_lines == parse_playlist(SAMPLE_PLAYLIST)


def test_parse_playlist_sorts_by_group_then_name():
    text = "\n".join(
        [
            '#EXTINF:-1 group-title="Sports",Zeta',
            "http://s/z",
            '#EXTINF:-1 group-title="News",Beta',
            "http://n/b",
            '#EXTINF:-1 group-title="Sports",Alpha',
            "http://s/a",
            '#EXTINF:-1 group-title="News",alpha',
            "http://n/a",
        ]
    )
    channels = parse_playlist(text)
    assert [(c.group, c.name) for c in channels] == [
        ("News", "alpha"),
        ("News", "Beta"),
        ("Sports", "Alpha"),
        ("Sports", "Zeta"),
    ]


def test_parse_playlist_ids_are_unique():
    channels = parse_playlist(SAMPLE_PLAYLIST * 3)
    assert len({channel.id for channel in channels}) == len(channels) == 6


def test_named_and_unnamed_streams():
    text = "\n".join(
        [
            '#EXTINF:-1 group-title="News" tvg-logo="x.png",CNN',
            "http://a.test/cnn.m3u8",
            "http://b.test/noname.m3u8",
        ]
    )
    assert parse_playlist(text) == [
        Channel(id=1, name="Channel 2", group="General", url="http://b.test/noname.m3u8"),
        Channel(id=0, name="CNN", group="News", url="http://a.test/cnn.m3u8", logo="x.png"),
    ]


def test_only_newlines_split_entries():
    text = '#EXTINF:-1 group-title="News",Late\x0cShow\nhttp://a/1\n'
    assert parse_playlist(text)[0].name == "Late\x0cShow"

    text = '#EXTINF:-1 group-title="Late\u2028Night",Show\r\nhttp://a/2\r\n'
    (channel,) = parse_playlist(text)
    assert channel.group == "Late\u2028Night"
    assert channel.url == "http://a/2"


def test_url_without_metadata_gets_defaults():
    channels = parse_playlist("#EXTINF:-1,First\nhttp://a/1\nhttp://b/2\n")
    by_url = {channel.url: channel for channel in channels}
    assert by_url["http://b/2"].name == "Channel 2"
    assert by_url["http://b/2"].group == DEFAULT_GROUP
    assert by_url["http://b/2"].logo == ""
    assert by_url["http://a/1"].name == "First"


def test_missing_group_uses_default():
    channels = parse_playlist("#EXTINF:-1 tvg-id=\"x\",Solo\nhttp://a/1\n")
    assert channels[0].group == DEFAULT_GROUP


def test_extinf_fields_merge_across_lines():
    text = '#EXTINF:-1 group-title="Kids",First\n#EXTINF:-1,Second\nhttp://a/1\n'
    channels = parse_playlist(text)
    assert [(c.group, c.name) for c in channels] == [("Kids", "Second")]


def test_metadata_resets_after_each_url():
    text = '#EXTINF:-1 group-title="Kids" tvg-logo="http://l",Cartoons\nhttp://a/1\nhttp://a/2\n'
    channels = parse_playlist(text)
    second = next(c for c in channels if c.url == "http://a/2")
    assert second.group == DEFAULT_GROUP
    assert second.logo == ""
    assert second.name == "Channel 2"


def test_name_comes_after_last_unquoted_comma():
    text = '#EXTINF:-1 group-title="News, World" tvg-logo="http://l/a,b.png",BBC One, HD\nhttp://a/1\n'
    channel = parse_playlist(text)[0]
    assert channel.group == "News, World"
    assert channel.logo == "http://l/a,b.png"
    assert channel.name == "HD"


def test_line_without_name_keeps_placeholder():
    channels = parse_playlist('#EXTINF:-1 group-title="News"\nhttp://a/1\n')
    assert channels[0].name == "Channel 1"
    assert channels[0].group == "News"


def test_attribute_names_are_case_insensitive():
    channels = parse_playlist('#EXTINF:-1 GROUP-TITLE="Movies" TVG-LOGO="http://l",Film\nhttp://a/1\n')
    assert channels[0].group == "Movies"
    assert channels[0].logo == "http://l"


def test_non_http_lines_are_ignored():
    text = "#EXTM3U\n#EXTINF:-1,Local\nrtmp://a/1\n\n# comment\nfile.ts\n"
    assert parse_playlist(text) == []


def test_parse_empty_input():
    assert parse_playlist("") == []
    assert parse_playlist([]) == []


def test_whitespace_around_lines_is_trimmed():
    channels = parse_playlist("   #EXTINF:-1,  Spaced Name  \r\n  http://a/1  \r\n")
    assert channels[0].name == "Spaced Name"
    assert channels[0].url == "http://a/1"


def test_collation_key_folds_case_and_accents():
    assert sorted(["éclair", "Zebra", "apple", "Eagle"], key=collation_key) == [
        "apple",
        "Eagle",
        "éclair",
        "Zebra",
    ]


def test_load_playlist_from_file(tmp_path: Path):
    path = tmp_path / "list.m3u"
    path.write_text(SAMPLE_PLAYLIST, encoding="utf8")
    progress: list[tuple[int, int | None]] = []
    channels = load_playlist(path, progress=lambda loaded, total: progress.append((loaded, total)))
    assert [channel.name for channel in channels] == ["Channel One", "Channel Two"]
    assert progress
    assert progress[-1][0] == progress[-1][1] == path.stat().st_size


def test_fetch_playlist_missing_file(tmp_path: Path):
    with pytest.raises(PlaylistError):
        fetch_playlist_text(tmp_path / "missing.m3u")


def test_fetch_playlist_http_error(monkeypatch):
    from urllib.error import URLError

    from livetv_tui import playlist as playlist_module

    def fake_urlopen(*args, **kwargs):
        raise URLError("unreachable")

    monkeypatch.setattr(playlist_module.request, "urlopen", fake_urlopen)
    with pytest.raises(PlaylistError):
        fetch_playlist_text("http://example.invalid/list.m3u")


def test_fetch_playlist_sends_user_agent(monkeypatch):
    from livetv_tui import playlist as playlist_module

    captured = {}

    class FakeResponse:
        length = None
        headers = {"Content-Length": "20"}

        def __init__(self) -> None:
            self._chunks = [b"#EXTINF:-1,A\n", b"http://a/1\n", b""]

        def read(self, size):
            return self._chunks.pop(0)

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

    def fake_urlopen(req, timeout):
        captured["agent"] = req.get_header("User-agent")
        captured["timeout"] = timeout
        return FakeResponse()

    monkeypatch.setattr(playlist_module.request, "urlopen", fake_urlopen)
    text = fetch_playlist_text("https://example.com/list.m3u", user_agent="TestAgent/1.0")
    assert text == "#EXTINF:-1,A\nhttp://a/1\n"
    assert captured == {"agent": "TestAgent/1.0", "timeout": 30.0}
