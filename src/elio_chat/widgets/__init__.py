"""Widget exports for the Elio chat UI."""

from .conversation import ConversationView
from .history_list import HistoryList
from .input_box import InputBox
from .message import MessageBubble
from .suggestion_list import SuggestionList

__all__ = [
    "ConversationView",
    "HistoryList",
    "InputBox",
    "MessageBubble",
    "SuggestionList",
]
