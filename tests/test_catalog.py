"""Tests for :mod:`livetv_tui.catalog`."""
from __future__ import annotations

from livetv_tui.catalog import (
    ALL_CATEGORIES,
    ChannelCatalog,
    build_categories,
    build_view,
    filter_channels,
)
from livetv_tui.playlist import Channel


def _channel(identifier: int, name: str, group: str) -> Channel:
    return Channel(id=identifier, name=name, group=group, url=f"http://example/{identifier}")


CHANNELS = (
    _channel(0, "CNN", "News"),
    _channel(1, "BBC World", "News"),
    _channel(2, "ESPN", "Sports"),
    _channel(3, "Cartoon Net", "Kids"),
)


def test_categories_sorted_with_all_first():
    assert build_categories(CHANNELS) == (ALL_CATEGORIES, "Kids", "News", "Sports")


def test_categories_of_empty_catalog():
    assert build_categories(()) == (ALL_CATEGORIES,)


def test_categories_do_not_repeat_all():
    channels = (*CHANNELS, _channel(9, "Misc", "all"))
    categories = build_categories(channels)
    assert categories.count(ALL_CATEGORIES) == 1
    assert categories[0] == ALL_CATEGORIES


def test_categories_ignore_search_term():
    view = build_view(CHANNELS, search_term="cnn")
    assert view.categories == (ALL_CATEGORIES, "Kids", "News", "Sports")
    assert [channel.name for channel in view.channels] == ["CNN"]


def test_filter_is_case_insensitive_substring():
    assert [c.name for c in filter_channels(CHANNELS, "n")] == [
        "CNN",
        "ESPN",
        "Cartoon Net",
    ]


def test_filter_matches_name_only():
    assert filter_channels(CHANNELS, "news") == ()


def test_filter_by_category():
    result = filter_channels(CHANNELS, "", "News")
    assert [c.name for c in result] == ["CNN", "BBC World"]


def test_filter_combines_search_and_category():
    assert [c.name for c in filter_channels(CHANNELS, "e", "Sports")] == ["ESPN"]
    assert filter_channels(CHANNELS, "espn", "News") == ()


def test_unknown_category_yields_empty_view():
    view = build_view(CHANNELS, category="Movies")
    assert view.channels == ()
    assert len(view) == 0


def test_empty_search_in_all_returns_everything_in_order():
    assert filter_channels(CHANNELS) == CHANNELS


def test_catalog_recomputes_view_on_change():
    catalog = ChannelCatalog(CHANNELS)
    first = catalog.view
    assert catalog.view is first
    catalog.set_search_term("bbc")
    assert [c.name for c in catalog.view.channels] == ["BBC World"]
    catalog.set_category("Sports")
    assert catalog.view.channels == ()
    catalog.set_search_term("")
    assert [c.name for c in catalog.view.channels] == ["ESPN"]
    assert catalog.view.category == "Sports"


def test_catalog_keeps_filters_when_channels_replaced():
    catalog = ChannelCatalog(category="News")
    assert catalog.view.categories == (ALL_CATEGORIES,)
    catalog.set_channels(CHANNELS)
    assert len(catalog) == 4
    assert [c.name for c in catalog.view.channels] == ["CNN", "BBC World"]
    catalog.clear()
    assert len(catalog) == 0
    assert catalog.view.channels == ()
    assert catalog.category == "News"
