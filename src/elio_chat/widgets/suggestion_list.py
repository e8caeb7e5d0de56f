"""Starter prompt list shown on an empty conversation."""

from __future__ import annotations

from collections.abc import Sequence

from textual.widgets import OptionList
from textual.widgets.option_list import Option

from ..models import Suggestion


class SuggestionList(OptionList):
    """Option list of suggestions; option ids index into :attr:`suggestions`."""

    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self.suggestions: list[Suggestion] = []

    def set_suggestions(self, suggestions: Sequence[Suggestion]) -> None:
        self.suggestions = list(suggestions)
        self.clear_options()
        self.add_options(
            [
                Option(f"{item.icon}  {item.text}", id=str(index))
                for index, item in enumerate(self.suggestions)
            ]
        )

    def suggestion_for(self, option_id: str | None) -> Suggestion | None:
        if option_id is None or not option_id.isdigit():
            return None
        index = int(option_id)
        if index >= len(self.suggestions):
            return None
        return self.suggestions[index]
