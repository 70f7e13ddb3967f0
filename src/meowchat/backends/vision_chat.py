"""Gemini generateContent backend with inline image support."""

import logging

from ..config import Settings
from ..core import Message, ModelKind, ModelOption, split_data_uri
from ..errors import ConfigurationError, MalformedResponseError, TransportError
from ..provider import ModelBackend

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "Please configure your Gemini API key in settings first"
REQUEST_FAILED_MESSAGE = "API request failed, please check that your Gemini API key is correct"


class VisionChatBackend(ModelBackend):
    """Multi-turn chat where each turn may carry an inline image."""

    kind = ModelKind.VISION_CHAT

    async def generate(
        self,
        model: ModelOption,
        history: list[Message],
        message: Message,
        settings: Settings,
    ) -> Message:
        if not settings.gemini_api_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

        payload = {
            "contents": self.build_contents(history, message),
            "generationConfig": dict(self.config.generation_config),
        }
        response = await self.client.post(
            model.endpoint,
            params={"key": settings.gemini_api_key},
            json=payload,
        )
        if not response.is_success:
            logger.error("Vision request for %s failed with status %s", model.id, response.status_code)
            raise TransportError(REQUEST_FAILED_MESSAGE, status_code=response.status_code)

        return Message(role="assistant", content=_extract_text(response))

    def build_contents(self, history: list[Message], message: Message) -> list[dict]:
        """One turn per message; assistant and system turns become "model" turns."""
        contents = []
        for msg in [*history, message]:
            parts: list[dict] = [{"text": msg.content}]
            if msg.image:
                mime_type, data = split_data_uri(msg.image)
                parts.append({"inlineData": {"mimeType": mime_type, "data": data}})
            contents.append({
                "role": "user" if msg.role == "user" else "model",
                "parts": parts,
            })
        return contents


def _extract_text(response) -> str:
    """Pull candidates[0].content.parts[0].text out of a response."""
    try:
        text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        logger.error("Unexpected vision response: %s", e)
        raise MalformedResponseError("The vision service returned an unexpected response") from e
    if not isinstance(text, str):
        raise MalformedResponseError("The vision service returned an unexpected response")
    return text
