"""Durable CRUD over the collection of conversation threads.

The collection always holds at least one thread and the selected id always
references one of them. Every read and mutation starts from the stored
collection, so several stores sharing one storage file (the web server and
the CLI, say) never overwrite each other's changes. Mutations write the
whole collection back before returning.
"""

import json
import logging
import time
import uuid
from dataclasses import replace
from typing import Callable, Optional

from .core import DEFAULT_THREAD_NAME, ConversationThread, Message
from .errors import StorageError, ThreadNotFoundError
from .serialization import threads_from_json, threads_to_json
from .storage import STORAGE_KEYS, KeyValueStorage

logger = logging.getLogger(__name__)

DEFAULT_THREAD_ID = "default"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return uuid.uuid4().hex


class ContextStore:
    """Owns the thread collection and the selected thread id."""

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Optional[Callable[[], int]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.storage = storage
        self._clock = clock or _now_ms
        self._id_factory = id_factory or _new_id
        self._threads: list[ConversationThread] = []
        self._selected_id: str | None = None
        self.load()

    @property
    def threads(self) -> list[ConversationThread]:
        self.load()
        return list(self._threads)

    @property
    def selected_id(self) -> str | None:
        self.load()
        return self._selected_id

    def get_thread(self, thread_id: str) -> ConversationThread:
        self.load()
        return self._get(thread_id)

    def has_thread(self, thread_id: str) -> bool:
        self.load()
        return self._has(thread_id)

    def current_thread(self) -> ConversationThread:
        self.load()
        return self._get(self._selected_id)

    def load(self) -> list[ConversationThread]:
        """Read the persisted collection, creating a default thread if needed."""
        raw = self.storage.get(STORAGE_KEYS["CONTEXTS"])
        threads: list[ConversationThread] = []
        if raw:
            try:
                threads = threads_from_json(raw)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.error("Stored thread collection is unreadable: %s", e)
                raise StorageError("Stored thread collection is unreadable") from e

        stored_selected = self.storage.get(STORAGE_KEYS["CURRENT_CONTEXT"])
        changed = False

        if not threads:
            now = self._clock()
            threads = [ConversationThread(id=DEFAULT_THREAD_ID, created_at=now, updated_at=now)]
            changed = True
            logger.info("No stored threads, created default thread")

        selected = stored_selected
        if not any(t.id == selected for t in threads):
            selected = threads[0].id
            changed = True

        self._threads = threads
        self._selected_id = selected
        if changed:
            self._persist()
        return list(self._threads)

    def create_thread(self) -> ConversationThread:
        """Append a new empty thread and select it."""
        self.load()
        thread = self._add_thread()
        self._persist()
        return thread

    def delete_thread(self, thread_id: str) -> None:
        """Remove a thread.

        Deleting the selected thread selects the first remaining one.
        Deleting the only thread replaces it with a fresh default thread.
        """
        self.load()
        if not self._has(thread_id):
            return

        self._threads = [t for t in self._threads if t.id != thread_id]
        logger.info("Deleted thread %s", thread_id)

        if not self._threads:
            self._add_thread()
        elif self._selected_id == thread_id:
            self._selected_id = self._threads[0].id
        self._persist()

    def rename_thread(self, thread_id: str, new_name: str) -> None:
        name = new_name.strip()
        if not name:
            return
        self.load()
        thread = self._get(thread_id)
        self._replace(replace(thread, name=name))
        self._persist()

    def append_messages(self, thread_id: str, messages: list[Message]) -> ConversationThread:
        """Replace a thread's message list and bump its updated_at."""
        self.load()
        thread = self._get(thread_id)
        updated = replace(thread, messages=list(messages), updated_at=self._clock())
        self._replace(updated)
        self._persist()
        return updated

    def select_thread(self, thread_id: str) -> None:
        self.load()
        if not self._has(thread_id):
            return
        self._selected_id = thread_id
        self._persist()

    # ── Private helpers ──────────────────────────────────────────────

    def _get(self, thread_id: str) -> ConversationThread:
        for thread in self._threads:
            if thread.id == thread_id:
                return thread
        raise ThreadNotFoundError(f"No thread with id {thread_id!r}")

    def _has(self, thread_id: str) -> bool:
        return any(t.id == thread_id for t in self._threads)

    def _add_thread(self) -> ConversationThread:
        thread_id = self._id_factory()
        while self._has(thread_id):
            thread_id = self._id_factory()
        now = self._clock()
        thread = ConversationThread(
            id=thread_id,
            name=DEFAULT_THREAD_NAME,
            created_at=now,
            updated_at=now,
        )
        self._threads.append(thread)
        self._selected_id = thread.id
        logger.info("Created thread %s", thread.id)
        return thread

    def _replace(self, thread: ConversationThread) -> None:
        self._threads = [thread if t.id == thread.id else t for t in self._threads]

    def _persist(self) -> None:
        self.storage.set(STORAGE_KEYS["CONTEXTS"], threads_to_json(self._threads))
        self.storage.set(STORAGE_KEYS["CURRENT_CONTEXT"], self._selected_id)
