"""CLI entry point for meowchat."""

import asyncio
import base64
import mimetypes
from pathlib import Path

import click
import uvicorn

from .config import get_storage_path
from .core import split_data_uri, to_data_uri
from .server import build_controller
from .storage import KeyValueStorage
from .store import ContextStore


def _storage():
    return KeyValueStorage(get_storage_path())


@click.group()
def main():
    """Chat with x.ai, Gemini and FLUX.1 models, with local conversation history."""
    pass


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the web API."""
    click.echo(f"Starting meowchat on http://{host}:{port}")
    uvicorn.run("meowchat.server:app", host=host, port=port, reload=False)


@main.command()
def threads():
    """List conversation threads; the selected one is marked with *."""
    store = ContextStore(_storage())
    selected_id = store.selected_id
    for thread in store.threads:
        marker = "*" if thread.id == selected_id else " "
        click.echo(f"{marker} {thread.id}  {thread.name}  ({len(thread.messages)} messages)")


@main.command()
def new():
    """Start a new conversation and select it."""
    thread = ContextStore(_storage()).create_thread()
    click.echo(thread.id)


@main.command()
@click.argument("text")
@click.option("--model", default=None, help="Model id (defaults to the saved setting).")
@click.option("--image", "image_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="Image to attach (vision models only).")
@click.option("--thread", "thread_id", default=None, help="Thread id (defaults to the selected thread).")
@click.option("--output", "output_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Where to write a generated image.")
def send(text: str, model: str | None, image_path: Path | None, thread_id: str | None,
         output_path: Path | None):
    """Send TEXT and print the reply."""
    image = None
    if image_path is not None:
        mime_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"
        image = to_data_uri(image_path.read_bytes(), mime_type)

    controller = build_controller(_storage())

    async def _run():
        try:
            return await controller.send(text, image=image, model_id=model, thread_id=thread_id)
        finally:
            await controller.router.aclose()

    reply = asyncio.run(_run())
    click.echo(reply.content)
    if reply.image and output_path is not None:
        _, payload = split_data_uri(reply.image)
        output_path.write_bytes(base64.b64decode(payload))
        click.echo(f"Image saved to {output_path}")
