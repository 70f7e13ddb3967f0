"""Core data models for meowchat."""

import base64
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

DEFAULT_THREAD_NAME = "New conversation"
EMPTY_THREAD_PREVIEW = "Empty conversation"
PREVIEW_LENGTH = 20


@dataclass(frozen=True)
class Message:
    """A single message within a conversation thread."""

    role: str  # "user" | "assistant" | "system"
    content: str
    image: Optional[str] = None  # data-URI


@dataclass
class ConversationThread:
    """A named, persisted conversation."""

    id: str
    name: str = DEFAULT_THREAD_NAME
    messages: list[Message] = field(default_factory=list)
    created_at: int = 0  # epoch milliseconds
    updated_at: int = 0


class ModelKind(str, Enum):
    """The three request shapes a model can be dispatched with."""

    TEXT_CHAT = "text_chat"
    VISION_CHAT = "vision_chat"
    IMAGE_GENERATOR = "image_generator"


@dataclass(frozen=True)
class ModelOption:
    """A remote model the user can talk to."""

    id: str
    name: str
    description: str
    kind: ModelKind = ModelKind.TEXT_CHAT
    endpoint: str = ""

    @property
    def supports_images(self) -> bool:
        return self.kind is ModelKind.VISION_CHAT

    @property
    def is_image_generator(self) -> bool:
        return self.kind is ModelKind.IMAGE_GENERATOR


AVAILABLE_MODELS: list[ModelOption] = [
    ModelOption(
        id="grok-beta",
        name="Grok Beta",
        description="Official x.ai chat model",
        kind=ModelKind.TEXT_CHAT,
        endpoint="https://api.x.ai/v1/chat/completions",
    ),
    ModelOption(
        id="gemini-flash",
        name="Gemini 2.0 Flash",
        description="Google's fast multimodal model with vision support",
        kind=ModelKind.VISION_CHAT,
        endpoint="https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash-exp:generateContent",
    ),
    ModelOption(
        id="flux-1",
        name="FLUX.1",
        description="Hugging Face image generation model",
        kind=ModelKind.IMAGE_GENERATOR,
        endpoint="https://api-inference.huggingface.co/models/black-forest-labs/FLUX.1-dev",
    ),
]

DEFAULT_MODEL_ID = "grok-beta"


def get_model(model_id: str) -> ModelOption:
    """Look up a model by id.

    Ids that are not in AVAILABLE_MODELS are sent to the x.ai chat endpoint
    under their own name, so any chat model the provider serves can be used.
    """
    for model in AVAILABLE_MODELS:
        if model.id == model_id:
            return model
    default = AVAILABLE_MODELS[0]
    return ModelOption(
        id=model_id,
        name=model_id,
        description=default.description,
        kind=ModelKind.TEXT_CHAT,
        endpoint=default.endpoint,
    )


_CODE_BLOCK_RE = re.compile(r"```[\s\S]*?```")
_INLINE_CODE_RE = re.compile(r"`.*?`")
_LINK_RE = re.compile(r"\[.*?\]\(.*?\)")


def message_preview(content: str) -> str:
    """Return a short single-line preview of a message body."""
    clean = _CODE_BLOCK_RE.sub("", content)
    clean = _INLINE_CODE_RE.sub("", clean)
    clean = _LINK_RE.sub("", clean)
    preview = clean.split("\n")[0].strip()
    if len(preview) > PREVIEW_LENGTH:
        return preview[:PREVIEW_LENGTH] + "..."
    return preview


def thread_preview(thread: ConversationThread) -> str:
    """Preview of the last message in a thread."""
    if not thread.messages:
        return EMPTY_THREAD_PREVIEW
    return message_preview(thread.messages[-1].content)


def suggested_name(thread: ConversationThread) -> str:
    """Name to offer when the user starts renaming a thread."""
    if thread.name == DEFAULT_THREAD_NAME and thread.messages:
        return message_preview(thread.messages[0].content)
    return thread.name


def to_data_uri(data: bytes, mime_type: str = "image/jpeg") -> str:
    """Encode raw bytes as a base64 data-URI."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def split_data_uri(uri: str, default_mime: str = "image/jpeg") -> tuple[str, str]:
    """Split a data-URI into (mime type, base64 payload).

    A bare base64 string without a "data:" prefix is returned as-is with the
    default mime type.
    """
    if not uri.startswith("data:") or "," not in uri:
        return default_mime, uri
    header, payload = uri.split(",", 1)
    mime = header[len("data:"):].split(";", 1)[0] or default_mime
    return mime, payload
