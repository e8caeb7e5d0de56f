"""Remote chat session client with streaming and multimodal payload support."""

from __future__ import annotations

import asyncio
import base64
import binascii
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import aclosing
from dataclasses import dataclass
import logging
import os
from typing import Any, Union

import httpx
from ollama import AsyncClient, ResponseError

from .context import ContextWindow, RequestMessage
from .exceptions import (
    RemoteConnectionError,
    RemoteError,
    RemoteModelNotFoundError,
    RemoteStreamingError,
)
from .models import Attachment, SessionConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_SYSTEM_INSTRUCTION = """
You are a helpful and expert AI assistant named "Elio".
You are capable of answering general questions, but you have a specific talent for writing, debugging, and explaining Python code.
- Always provide clean, efficient, and PEP-8 compliant Python code if the user asks for code.
- When generating code, wrap it in Markdown code blocks (e.g., ```python ... ```).
- If the user asks for an explanation, explain the concepts clearly but concisely.
- Be friendly, professional, and precise.
""".strip()

_TEXTUAL_MIME_TYPES = frozenset(
    {
        "application/json",
        "application/xml",
        "application/x-yaml",
        "application/javascript",
        "application/x-python",
        "application/toml",
    }
)


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class InlineDataPart:
    mime_type: str
    data: str


Part = Union[TextPart, InlineDataPart]
MessagePayload = Union[str, list[Part]]


def build_message_payload(
    text: str, attachments: Sequence[Attachment] = ()
) -> MessagePayload:
    """Build the request payload for one user turn.

    Without attachments the payload is the raw text. With attachments it is
    an ordered part list: a text part (only when ``text`` is non-empty)
    followed by one inline-data part per attachment.
    """
    if not attachments:
        return text
    parts: list[Part] = []
    if text:
        parts.append(TextPart(text=text))
    for attachment in attachments:
        parts.append(InlineDataPart(mime_type=attachment.mime_type, data=attachment.data))
    return parts


def _is_textual(mime_type: str) -> bool:
    normalized = mime_type.lower().split(";", 1)[0].strip()
    return normalized.startswith("text/") or normalized in _TEXTUAL_MIME_TYPES


def to_request_message(payload: MessagePayload) -> RequestMessage:
    """Translate a payload into an Ollama chat message.

    Images travel as base64 ``images``; textual inline data is decoded and
    appended to the content as a fenced block. Other media types have no
    representation on the wire and are dropped.
    """
    if isinstance(payload, str):
        return {"role": "user", "content": payload}

    texts: list[str] = []
    images: list[str] = []
    for part in payload:
        if isinstance(part, TextPart):
            texts.append(part.text)
        elif part.mime_type.lower().startswith("image/"):
            images.append(part.data)
        elif _is_textual(part.mime_type):
            try:
                decoded = base64.b64decode(part.data, validate=True).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError, ValueError):
                LOGGER.warning(
                    "session.payload.undecodable",
                    extra={
                        "event": "session.payload.undecodable",
                        "mime_type": part.mime_type,
                    },
                )
                continue
            texts.append(f"```\n{decoded}\n```")
        else:
            LOGGER.warning(
                "session.payload.unsupported",
                extra={"event": "session.payload.unsupported", "mime_type": part.mime_type},
            )

    message: RequestMessage = {"role": "user", "content": "\n\n".join(texts)}
    if images:
        message["images"] = images
    return message


def _extract_from_chunk(chunk: Any, field: str) -> Any:
    """Read ``message.<field>`` from an SDK object or a plain dict chunk."""
    message_obj = getattr(chunk, "message", None)
    if message_obj is not None and not isinstance(chunk, dict):
        value = getattr(message_obj, field, None)
        if value is not None:
            return value

    if hasattr(chunk, "model_dump"):
        chunk = chunk.model_dump()

    if isinstance(chunk, dict):
        message = chunk.get("message")
        if isinstance(message, dict):
            return message.get(field)
        return chunk.get(field)
    return None


def extract_chunk_text(chunk: Any) -> str:
    """Extract streamed answer text from a chat chunk."""
    value = _extract_from_chunk(chunk, "content")
    return value if isinstance(value, str) else ""


class ChatSession:
    """One remote conversational context bound to an instruction and effort level."""

    def __init__(
        self,
        client: Any,
        model: str,
        system_instruction: str,
        *,
        think: bool | str | None = None,
        max_history_messages: int = 200,
        max_context_tokens: int = 8192,
    ) -> None:
        self._client = client
        self.model = model
        self.think = think
        self.context = ContextWindow(
            system_instruction=system_instruction,
            max_history_messages=max_history_messages,
            max_context_tokens=max_context_tokens,
        )

    async def stream(self, payload: MessagePayload) -> AsyncIterator[str]:
        """Yield non-empty text increments for one user turn.

        The exchange is added to the session history only when the remote
        stream ends normally.
        """
        message = to_request_message(payload)
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": self.context.build_request(message),
            "stream": True,
        }
        if self.think is not None:
            kwargs["think"] = self.think

        received: list[str] = []
        response = await self._client.chat(**kwargs)
        async with aclosing(response) as chunks:
            async for chunk in chunks:
                text = extract_chunk_text(chunk)
                if text:
                    received.append(text)
                    yield text

        self.context.commit(str(message["content"]), "".join(received))


class RemoteSessionClient:
    """Own the single chat-session handle and expose streaming sends.

    ``initialize`` and ``reset`` create and discard the handle; no network
    traffic happens until the first send.
    """

    def __init__(
        self,
        client: Any,
        model: str,
        system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION,
        *,
        host: str = "",
        reasoning_effort: str = "",
        max_history_messages: int = 200,
        max_context_tokens: int = 8192,
    ) -> None:
        self._client = client
        self.model = model
        self.host = host
        self.system_instruction = system_instruction
        self.reasoning_effort = reasoning_effort.strip()
        self.max_history_messages = max_history_messages
        self.max_context_tokens = max_context_tokens
        self._session: ChatSession | None = None
        self._config = SessionConfig()

    @classmethod
    def from_config(cls, model_config: dict[str, Any]) -> RemoteSessionClient:
        """Build a client for the ``[model]`` configuration section."""
        host = str(model_config["host"])
        api_key = str(model_config.get("api_key") or os.environ.get("OLLAMA_API_KEY", ""))
        headers = {"Authorization": f"Bearer {api_key}"} if api_key.strip() else None
        client = AsyncClient(
            host=host, timeout=int(model_config["timeout"]), headers=headers
        )
        return cls(
            client,
            model=str(model_config["model"]),
            system_instruction=str(model_config["system_prompt"]),
            host=host,
            reasoning_effort=str(model_config.get("reasoning_effort", "")),
            max_history_messages=int(model_config["max_history_messages"]),
            max_context_tokens=int(model_config["max_context_tokens"]),
        )

    @property
    def client(self) -> Any:
        """Underlying transport client, shared with the suggestion provider."""
        return self._client

    @property
    def has_session(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> ChatSession | None:
        return self._session

    @property
    def config(self) -> SessionConfig:
        return self._config

    def _think_argument(self, config: SessionConfig) -> bool | str | None:
        if not config.use_thinking:
            return None
        return self.reasoning_effort or True

    def initialize(self, config: SessionConfig | None = None) -> None:
        """Create a fresh session handle bound to ``config``, replacing any prior one."""
        self._config = config or SessionConfig()
        self._session = ChatSession(
            self._client,
            self.model,
            self.system_instruction,
            think=self._think_argument(self._config),
            max_history_messages=self.max_history_messages,
            max_context_tokens=self.max_context_tokens,
        )
        LOGGER.info(
            "session.initialize",
            extra={
                "event": "session.initialize",
                "model": self.model,
                "use_thinking": self._config.use_thinking,
            },
        )

    def reset(self) -> None:
        """Discard the session handle."""
        self._session = None
        LOGGER.info("session.reset", extra={"event": "session.reset"})

    def clear_history(self) -> None:
        """Forget the turns replayed to the model; the handle itself is kept."""
        if self._session is None:
            return
        self._session.context.clear()
        LOGGER.info("session.history.cleared", extra={"event": "session.history.cleared"})

    def _map_exception(self, exc: BaseException) -> RemoteError:
        if isinstance(exc, RemoteError):
            return exc

        if isinstance(
            exc,
            (
                httpx.ConnectError,
                httpx.ConnectTimeout,
                httpx.ReadTimeout,
                httpx.NetworkError,
                ConnectionError,
            ),
        ):
            return RemoteConnectionError(
                f"Unable to connect to the model host {self.host or '(default)'}."
            )

        lower_message = str(exc).lower()
        status_code = getattr(exc, "status_code", None)
        if isinstance(exc, ResponseError) and status_code == 404:
            return RemoteModelNotFoundError(f"Model {self.model!r} was not found.")
        if "model" in lower_message and "not found" in lower_message:
            return RemoteModelNotFoundError(f"Model {self.model!r} was not found.")

        return RemoteStreamingError(f"Failed to stream response: {exc}")

    async def stream(
        self, text: str, attachments: Sequence[Attachment] = ()
    ) -> AsyncIterator[str]:
        """Stream text increments for one user turn.

        Lazily initializes a session with the default configuration. Any
        failure surfaces as a :class:`RemoteError`; nothing is retried and
        increments already yielded stay delivered.
        """
        if self._session is None:
            self.initialize(SessionConfig())
        session = self._session
        if session is None:
            raise RemoteStreamingError("Failed to initialize chat session.")

        payload = build_message_payload(text, attachments)
        LOGGER.info(
            "session.stream.start",
            extra={
                "event": "session.stream.start",
                "model": self.model,
                "attachments": len(attachments),
            },
        )
        increments = 0
        try:
            async with aclosing(session.stream(payload)) as chunks:
                async for increment in chunks:
                    increments += 1
                    yield increment
        except asyncio.CancelledError:
            LOGGER.info(
                "session.stream.cancelled", extra={"event": "session.stream.cancelled"}
            )
            raise
        except Exception as exc:  # noqa: BLE001 - external API can fail in many ways.
            mapped = self._map_exception(exc)
            LOGGER.warning(
                "session.stream.failed",
                extra={
                    "event": "session.stream.failed",
                    "error_type": mapped.__class__.__name__,
                    "increments": increments,
                },
            )
            raise mapped from exc

        LOGGER.info(
            "session.stream.complete",
            extra={"event": "session.stream.complete", "increments": increments},
        )

    async def send_stream(
        self,
        text: str,
        attachments: Sequence[Attachment],
        on_increment: Callable[[str], None],
    ) -> None:
        """Deliver every increment to ``on_increment`` before requesting the next."""
        async with aclosing(self.stream(text, attachments)) as increments:
            async for increment in increments:
                on_increment(increment)
