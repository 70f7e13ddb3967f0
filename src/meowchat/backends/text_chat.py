"""x.ai chat-completions backend."""

import logging

from ..config import Settings
from ..core import Message, ModelKind, ModelOption
from ..errors import ConfigurationError, MalformedResponseError, TransportError
from ..provider import ModelBackend

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "Please configure your x.ai API key in settings first!"
REQUEST_FAILED_MESSAGE = "API request failed, please check that your API key is correct"


class TextChatBackend(ModelBackend):
    """Non-streaming chat completion with a fixed system persona."""

    kind = ModelKind.TEXT_CHAT

    async def generate(
        self,
        model: ModelOption,
        history: list[Message],
        message: Message,
        settings: Settings,
    ) -> Message:
        if not settings.xai_api_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

        payload = {
            "messages": self.build_messages(history, message),
            "model": model.id,
            "stream": False,
            "temperature": self.config.text_temperature,
        }
        response = await self.client.post(
            model.endpoint,
            json=payload,
            headers={"Authorization": f"Bearer {settings.xai_api_key}"},
        )
        if not response.is_success:
            logger.error("Chat request for %s failed with status %s", model.id, response.status_code)
            raise TransportError(REQUEST_FAILED_MESSAGE, status_code=response.status_code)

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected chat response for %s: %s", model.id, e)
            raise MalformedResponseError("The chat service returned an unexpected response") from e

        if not isinstance(content, str):
            raise MalformedResponseError("The chat service returned an unexpected response")
        return Message(role="assistant", content=content)

    def build_messages(self, history: list[Message], message: Message) -> list[dict]:
        """System persona, then the full history, then the new message."""
        messages = [{"role": "system", "content": self.config.system_prompt}]
        for msg in [*history, message]:
            messages.append({"role": msg.role, "content": msg.content})
        return messages
