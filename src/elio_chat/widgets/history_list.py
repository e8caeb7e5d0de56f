"""Sidebar listing stored conversations, most recent first."""

from __future__ import annotations

from collections.abc import Sequence

from textual.widgets import OptionList
from textual.widgets.option_list import Option

from ..models import ChatHistoryItem

ACTIVE_MARKER = "> "


class HistoryList(OptionList):
    """Option list whose option ids are conversation ids."""

    def set_items(
        self, items: Sequence[ChatHistoryItem], active_id: str | None = None
    ) -> None:
        highlighted = self.highlighted
        self.clear_options()
        self.add_options(
            [
                Option(
                    f"{ACTIVE_MARKER if item.id == active_id else ''}{item.title}",
                    id=item.id,
                )
                for item in items
            ]
        )
        if highlighted is not None and self.option_count:
            self.highlighted = min(highlighted, self.option_count - 1)
