"""Category index and search filtering over a parsed channel list."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from .logging_utils import get_logger
from .playlist import Channel, collation_key

log = get_logger(__name__)

ALL_CATEGORIES = "all"


@dataclass(frozen=True, slots=True)
class CatalogView:
    """Snapshot of the categories and the channels passing the current filter."""

    categories: tuple[str, ...]
    channels: tuple[Channel, ...]
    search_term: str = ""
    category: str = ALL_CATEGORIES

    def __len__(self) -> int:
        return len(self.channels)


def build_categories(channels: Sequence[Channel]) -> tuple[str, ...]:
    """Return distinct groups sorted by collation with ``"all"`` pinned first."""

    groups = {channel.group for channel in channels}
    groups.discard(ALL_CATEGORIES)
    return (ALL_CATEGORIES, *sorted(groups, key=collation_key))


def filter_channels(
    channels: Sequence[Channel],
    search_term: str = "",
    category: str = ALL_CATEGORIES,
) -> tuple[Channel, ...]:
    """Return channels whose name contains *search_term* within *category*.

    Matching is case-insensitive and looks at ``name`` only. The category is
    compared exactly unless it is ``"all"``.
    """

    needle = search_term.casefold()
    results = tuple(
        channel
        for channel in channels
        if needle in channel.name.casefold()
        and (category == ALL_CATEGORIES or channel.group == category)
    )
    log.debug(
        "Filter search=%r category=%r matched %d of %d channel(s)",
        search_term,
        category,
        len(results),
        len(channels),
    )
    return results


def build_view(
    channels: Sequence[Channel],
    search_term: str = "",
    category: str = ALL_CATEGORIES,
) -> CatalogView:
    return CatalogView(
        categories=build_categories(channels),
        channels=filter_channels(channels, search_term, category),
        search_term=search_term,
        category=category,
    )


class ChannelCatalog:
    """Hold the catalog inputs and derive a fresh :class:`CatalogView` on change."""

    __slots__ = ("_channels", "_search_term", "_category", "_view")

    def __init__(
        self,
        channels: Sequence[Channel] = (),
        *,
        search_term: str = "",
        category: str = ALL_CATEGORIES,
    ) -> None:
        self._channels: tuple[Channel, ...] = tuple(channels)
        self._search_term = search_term
        self._category = category
        self._view: Optional[CatalogView] = None

    @property
    def channels(self) -> tuple[Channel, ...]:
        return self._channels

    @property
    def search_term(self) -> str:
        return self._search_term

    @property
    def category(self) -> str:
        return self._category

    @property
    def view(self) -> CatalogView:
        """Return the view for the current inputs, recomputing after changes."""

        if self._view is None:
            self._view = build_view(self._channels, self._search_term, self._category)
        return self._view

    def set_channels(self, channels: Sequence[Channel]) -> CatalogView:
        self._channels = tuple(channels)
        self._view = None
        log.info("Catalog updated with %d channel(s)", len(self._channels))
        return self.view

    def set_search_term(self, search_term: str) -> CatalogView:
        if search_term != self._search_term:
            self._search_term = search_term
            self._view = None
        return self.view

    def set_category(self, category: str) -> CatalogView:
        if category != self._category:
            self._category = category
            self._view = None
            log.debug("Category changed to %s", category)
        return self.view

    def clear(self) -> CatalogView:
        return self.set_channels(())

    def __len__(self) -> int:
        return len(self._channels)


__all__ = [
    "ALL_CATEGORIES",
    "CatalogView",
    "ChannelCatalog",
    "build_categories",
    "build_view",
    "filter_channels",
]
