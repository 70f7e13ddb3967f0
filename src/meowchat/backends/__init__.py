"""Registry of model backends, one per request shape."""

import httpx

from ..config import ChatConfig
from ..core import ModelKind
from ..provider import ModelBackend
from .image_generation import ImageGenerationBackend
from .text_chat import TextChatBackend
from .vision_chat import VisionChatBackend

BACKEND_CLASSES: dict[ModelKind, type[ModelBackend]] = {
    ModelKind.TEXT_CHAT: TextChatBackend,
    ModelKind.VISION_CHAT: VisionChatBackend,
    ModelKind.IMAGE_GENERATOR: ImageGenerationBackend,
}


def build_backends(client: httpx.AsyncClient, config: ChatConfig) -> dict[ModelKind, ModelBackend]:
    """Instantiate one backend for every ModelKind."""
    missing = set(ModelKind) - set(BACKEND_CLASSES)
    if missing:
        raise RuntimeError(f"No backend registered for {sorted(k.value for k in missing)}")
    return {kind: cls(client, config) for kind, cls in BACKEND_CLASSES.items()}
