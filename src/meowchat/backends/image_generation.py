"""Hugging Face text-to-image backend (FLUX.1).

The whole conversation is flattened into one prompt, so earlier turns steer
the generated image:

    User: a cat
    Assistant: Generated an image based on: <confirmation text>
    User: now make it orange
    Generate an image based on the conversation context.
"""

import logging

from ..config import Settings
from ..core import Message, ModelKind, ModelOption, to_data_uri
from ..errors import TransportError
from ..provider import ModelBackend

logger = logging.getLogger(__name__)

GENERATED_CONTENT = "Generated an image based on the conversation context"
GENERATION_FAILED_MESSAGE = "Failed to generate image"
PROMPT_SUFFIX = "Generate an image based on the conversation context."


class ImageGenerationBackend(ModelBackend):
    """Returns an assistant message carrying the generated image."""

    kind = ModelKind.IMAGE_GENERATOR

    async def generate(
        self,
        model: ModelOption,
        history: list[Message],
        message: Message,
        settings: Settings,
    ) -> Message:
        headers = {}
        if settings.hf_api_token:
            headers["Authorization"] = f"Bearer {settings.hf_api_token}"

        response = await self.client.post(
            model.endpoint,
            json={"inputs": build_prompt([*history, message])},
            headers=headers,
        )
        if not response.is_success:
            logger.error("Image generation for %s failed with status %s", model.id, response.status_code)
            raise TransportError(GENERATION_FAILED_MESSAGE, status_code=response.status_code)

        mime_type = response.headers.get("content-type", "").split(";")[0].strip() or "image/jpeg"
        return Message(
            role="assistant",
            content=GENERATED_CONTENT,
            image=to_data_uri(response.content, mime_type),
        )


def build_prompt(messages: list[Message]) -> str:
    lines = []
    for msg in messages:
        if msg.role == "user":
            lines.append(f"User: {msg.content}")
        elif msg.role == "assistant":
            lines.append(f"Assistant: Generated an image based on: {msg.content}")
    lines.append(PROMPT_SUFFIX)
    return "\n".join(lines)
