"""FastAPI web server for meowchat."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from .config import ChatConfig, Settings, SettingsProvider, get_storage_path
from .controller import ConversationController
from .core import AVAILABLE_MODELS, ConversationThread, suggested_name, thread_preview
from .errors import ThreadBusyError, ThreadNotFoundError
from .router import MessageRouter
from .serialization import message_to_dict, thread_to_dict
from .storage import KeyValueStorage
from .store import ContextStore

logger = logging.getLogger(__name__)

# Controller cache (populated on first request)
_controller: ConversationController | None = None


def build_controller(storage: KeyValueStorage, config: ChatConfig | None = None) -> ConversationController:
    """Wire a store, router and settings provider around one storage file."""
    config = config or ChatConfig()
    return ConversationController(
        store=ContextStore(storage),
        router=MessageRouter(config),
        settings_provider=SettingsProvider(storage),
        config=config,
    )


def _get_controller() -> ConversationController:
    """Lazily initialize and cache the controller."""
    global _controller
    if _controller is None:
        path = get_storage_path()
        _controller = build_controller(KeyValueStorage(path))
        logger.info("Using storage file %s", path)
    return _controller


async def close_controller() -> None:
    """Close the cached controller's HTTP client and drop it from the cache."""
    global _controller
    if _controller is not None:
        await _controller.router.aclose()
        _controller = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_controller()


app = FastAPI(title="meowchat", version="0.1.0", lifespan=lifespan)


def _thread_summary(thread: ConversationThread) -> dict:
    """Sidebar view of a thread, without its messages."""
    return {
        "id": thread.id,
        "name": thread.name,
        "preview": thread_preview(thread),
        "message_count": len(thread.messages),
        "createdAt": thread.created_at,
        "updatedAt": thread.updated_at,
    }


def _mask(secret: str) -> str:
    if not secret:
        return ""
    if len(secret) <= 8:
        return "*" * len(secret)
    return secret[:4] + "*" * (len(secret) - 8) + secret[-4:]


def _get_thread_or_404(controller: ConversationController, thread_id: str) -> ConversationThread:
    try:
        return controller.store.get_thread(thread_id)
    except ThreadNotFoundError:
        raise HTTPException(status_code=404, detail="Thread not found")


class RenameRequest(BaseModel):
    name: str


class SendRequest(BaseModel):
    content: str = ""
    image: str | None = None
    model: str | None = None


class SettingsUpdate(BaseModel):
    xai_api_key: str | None = None
    gemini_api_key: str | None = None
    hf_api_token: str | None = None
    selected_model: str | None = None


# ── Routes ───────────────────────────────────────────────────────


@app.get("/api/models")
async def get_models():
    """Return the selectable models and their capabilities."""
    return [
        {
            "id": m.id,
            "name": m.name,
            "description": m.description,
            "supports_images": m.supports_images,
            "is_image_generator": m.is_image_generator,
        }
        for m in AVAILABLE_MODELS
    ]


@app.get("/api/threads")
async def get_threads():
    """Return all threads and the selected thread id."""
    store = _get_controller().store
    return {
        "selected_id": store.selected_id,
        "threads": [_thread_summary(t) for t in store.threads],
    }


@app.post("/api/threads", status_code=201)
async def create_thread():
    """Create a new thread and select it."""
    thread = _get_controller().store.create_thread()
    return thread_to_dict(thread)


@app.get("/api/threads/{thread_id}")
async def get_thread(thread_id: str):
    """Return a thread with its full message history."""
    controller = _get_controller()
    thread = _get_thread_or_404(controller, thread_id)
    data = thread_to_dict(thread)
    data["suggested_name"] = suggested_name(thread)
    data["loading"] = controller.is_sending(thread_id)
    return data


@app.patch("/api/threads/{thread_id}")
async def rename_thread(thread_id: str, body: RenameRequest):
    """Rename a thread. Blank names leave it unchanged."""
    controller = _get_controller()
    _get_thread_or_404(controller, thread_id)
    controller.store.rename_thread(thread_id, body.name)
    return _thread_summary(controller.store.get_thread(thread_id))


@app.delete("/api/threads/{thread_id}")
async def delete_thread(thread_id: str):
    """Delete a thread; returns the resulting selection."""
    controller = _get_controller()
    _get_thread_or_404(controller, thread_id)
    controller.store.delete_thread(thread_id)
    return {
        "selected_id": controller.store.selected_id,
        "threads": [_thread_summary(t) for t in controller.store.threads],
    }


@app.post("/api/threads/{thread_id}/select")
async def select_thread(thread_id: str):
    controller = _get_controller()
    _get_thread_or_404(controller, thread_id)
    controller.store.select_thread(thread_id)
    return {"selected_id": controller.store.selected_id}


@app.post("/api/threads/{thread_id}/messages")
async def send_message(thread_id: str, body: SendRequest):
    """Send a user message to a thread and wait for the reply."""
    controller = _get_controller()
    _get_thread_or_404(controller, thread_id)
    try:
        reply = await controller.send(
            body.content,
            image=body.image,
            model_id=body.model,
            thread_id=thread_id,
        )
    except ThreadBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    try:
        thread = controller.store.get_thread(thread_id)
    except ThreadNotFoundError:
        raise HTTPException(status_code=404, detail="Thread was deleted while waiting for a reply")

    return {
        "reply": message_to_dict(reply),
        "thread": thread_to_dict(thread),
    }


@app.get("/api/status")
async def get_status():
    controller = _get_controller()
    return {"loading": controller.is_loading}


@app.get("/api/settings")
async def get_settings():
    """Return settings with credentials masked."""
    settings = _get_controller().settings_provider.load()
    return {
        "xai_api_key": _mask(settings.xai_api_key),
        "gemini_api_key": _mask(settings.gemini_api_key),
        "hf_api_token": _mask(settings.hf_api_token),
        "selected_model": settings.selected_model,
    }


@app.put("/api/settings")
async def update_settings(body: SettingsUpdate):
    """Update any subset of the settings."""
    provider = _get_controller().settings_provider
    current = provider.load()
    updated = Settings(
        xai_api_key=current.xai_api_key if body.xai_api_key is None else body.xai_api_key,
        gemini_api_key=current.gemini_api_key if body.gemini_api_key is None else body.gemini_api_key,
        hf_api_token=current.hf_api_token if body.hf_api_token is None else body.hf_api_token,
        selected_model=body.selected_model or current.selected_model,
    )
    provider.save(updated)
    logger.info("Settings updated (model: %s)", updated.selected_model)
    return {"selected_model": updated.selected_model}
