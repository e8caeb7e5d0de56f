"""Scrollable conversation view reconciled against timeline snapshots."""

from __future__ import annotations

from collections.abc import Sequence

from textual.containers import VerticalScroll

from ..models import Message
from .message import MessageBubble


class ConversationView(VerticalScroll):
    """Host one :class:`MessageBubble` per message, keyed by message id."""

    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self._bubbles: dict[str, MessageBubble] = {}

    async def show_messages(self, messages: Sequence[Message]) -> None:
        """Bring the mounted bubbles in line with ``messages``.

        Bubbles for known ids are updated in place; unknown ids are mounted at
        the end; bubbles whose id disappeared are removed.
        """
        wanted = {message.id for message in messages}
        stale = [key for key in self._bubbles if key not in wanted]
        for key in stale:
            await self._bubbles.pop(key).remove()

        for message in messages:
            bubble = self._bubbles.get(message.id)
            if bubble is not None:
                bubble.update_message(message)
                continue
            bubble = MessageBubble(message)
            self._bubbles[message.id] = bubble
            await self.mount(bubble)

        if messages:
            self.scroll_end(animate=False)
