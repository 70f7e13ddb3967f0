"""Abstract base class for model backends."""

from abc import ABC, abstractmethod

import httpx

from .config import ChatConfig, Settings
from .core import Message, ModelKind, ModelOption


class ModelBackend(ABC):
    """Base class for the request shapes a model can be dispatched with.

    Each backend (text chat, vision chat, image generation) turns a new user
    message plus the prior history into one HTTP request and normalizes the
    response into an assistant Message. Failures raise DispatchError.
    """

    kind: ModelKind

    def __init__(self, client: httpx.AsyncClient, config: ChatConfig):
        self.client = client
        self.config = config

    @abstractmethod
    async def generate(
        self,
        model: ModelOption,
        history: list[Message],
        message: Message,
        settings: Settings,
    ) -> Message:
        """Send `message` with `history` as context and return the reply."""
        ...
