"""Client-side turn history resent with every request of a chat session."""

from __future__ import annotations

from dataclasses import dataclass

RequestMessage = dict[str, object]


@dataclass(frozen=True)
class Turn:
    role: str
    content: str
    tokens: int


def estimate_tokens(role: str, content: str) -> int:
    """Deterministic, model-agnostic token estimate for one message."""
    role_cost = 2 if role else 0
    return role_cost + len(content) // 4 + len(content.split()) + 2


class ContextWindow:
    """Bounded user/assistant turn history behind a fixed system instruction.

    The remote endpoint keeps no memory between requests, so everything the
    model should remember is replayed from here. Only text is kept; inline
    attachments are sent once with the turn that carried them.
    """

    def __init__(
        self,
        system_instruction: str = "",
        max_history_messages: int = 200,
        max_context_tokens: int = 8192,
    ) -> None:
        self.system_instruction = system_instruction.strip()
        self.max_history_messages = max(2, max_history_messages)
        self.max_context_tokens = max(1, max_context_tokens)
        self._turns: list[Turn] = []

    def __len__(self) -> int:
        return len(self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def commit(self, user_content: str, assistant_content: str) -> None:
        """Record a completed exchange; called only after a stream ends cleanly."""
        for role, content in (("user", user_content), ("assistant", assistant_content)):
            self._turns.append(Turn(role, content, estimate_tokens(role, content)))
        while len(self._turns) > self.max_history_messages:
            # Drop whole exchanges so the history never starts with an assistant turn.
            del self._turns[:2]

    def build_request(self, message: RequestMessage) -> list[RequestMessage]:
        """Return system + trimmed history + ``message`` within the token budget."""
        head: list[RequestMessage] = []
        budget = self.max_context_tokens
        if self.system_instruction:
            head.append({"role": "system", "content": self.system_instruction})
            budget -= estimate_tokens("system", self.system_instruction)
        budget -= estimate_tokens("user", str(message.get("content", "")))

        kept: list[Turn] = []
        # Walk backwards in exchange pairs, keeping the newest that fit.
        for index in range(len(self._turns) - 2, -1, -2):
            pair = self._turns[index : index + 2]
            cost = sum(turn.tokens for turn in pair)
            if cost > budget:
                break
            budget -= cost
            kept[:0] = pair

        history = [{"role": turn.role, "content": turn.content} for turn in kept]
        return head + history + [message]
