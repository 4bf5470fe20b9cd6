"""Diagnostics widget showing recent log output inside the application."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Optional, Tuple

from textual.widgets import Static

from .logging_utils import register_log_viewer


class LogViewer(Static):
    """Rolling buffer of formatted log lines, newest at the bottom."""

    def __init__(
        self,
        *,
        max_lines: int = 300,
        id: Optional[str] = None,
    ) -> None:
        super().__init__("", id=id, markup=False)
        self._messages: Deque[str] = deque(maxlen=max_lines)

    def on_mount(self) -> None:
        register_log_viewer(self)

    def on_unmount(self) -> None:
        register_log_viewer(None)

    @property
    def lines(self) -> Tuple[str, ...]:
        return tuple(self._messages)

    def append_message(self, message: str) -> None:
        self._messages.append(message)
        self._refresh_view()

    def replace_messages(self, messages: Iterable[str]) -> None:
        self._messages.clear()
        self._messages.extend(messages)
        self._refresh_view()

    def _refresh_view(self) -> None:
        self.update("\n".join(self._messages) if self._messages else "No log messages yet.")
        self.call_after_refresh(self.scroll_end, animate=False)
