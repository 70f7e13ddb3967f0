"""Dispatch a user message to the backend matching the model's kind."""

import logging

import httpx

from .backends import build_backends
from .config import ChatConfig, Settings
from .core import Message, ModelOption

logger = logging.getLogger(__name__)


class MessageRouter:
    """Routes each send to exactly one backend, in a single attempt.

    Backend failures surface as DispatchError subclasses. Network failures
    (httpx.RequestError) propagate unchanged; nothing is retried.
    """

    def __init__(self, config: ChatConfig | None = None, client: httpx.AsyncClient | None = None):
        self.config = config or ChatConfig()
        self._owns_client = client is None
        if client is None:
            kwargs = {} if self.config.timeout is None else {"timeout": self.config.timeout}
            client = httpx.AsyncClient(**kwargs)
        self.client = client
        self.backends = build_backends(self.client, self.config)

    async def dispatch(
        self,
        model: ModelOption,
        history: list[Message],
        message: Message,
        settings: Settings,
    ) -> Message:
        """Send `message` under `model` with `history` as prior context."""
        backend = self.backends[model.kind]
        logger.info("Dispatching to %s via %s", model.id, type(backend).__name__)
        return await backend.generate(model, history, message, settings)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
