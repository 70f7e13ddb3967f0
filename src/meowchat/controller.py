"""Orchestrates a send: store the user message, dispatch, store the reply.

Each send is keyed by the thread id captured when it starts, so a reply lands
on the right thread even if the user switches threads while waiting. A second
send to a thread that already has one in flight is rejected with
ThreadBusyError before anything is stored.
"""

import logging

from .config import ChatConfig, SettingsProvider
from .core import Message, get_model
from .errors import DispatchError, ThreadBusyError, ThreadNotFoundError
from .router import MessageRouter
from .store import ContextStore

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "The server responded with an error, please try again later"


class ConversationController:
    """Glue between the context store and the message router."""

    def __init__(
        self,
        store: ContextStore,
        router: MessageRouter,
        settings_provider: SettingsProvider,
        config: ChatConfig | None = None,
    ):
        self.store = store
        self.router = router
        self.settings_provider = settings_provider
        self.config = config or router.config
        self._in_flight: set[str] = set()
        self.streaming_text = ""

    @property
    def is_loading(self) -> bool:
        return bool(self._in_flight)

    def is_sending(self, thread_id: str) -> bool:
        return thread_id in self._in_flight

    async def send(
        self,
        content: str,
        image: str | None = None,
        model_id: str | None = None,
        thread_id: str | None = None,
    ) -> Message:
        """Send a user message and return the assistant message appended for it.

        Dispatch failures never raise: they come back as an assistant message
        prefixed with the apology marker.
        """
        thread_id = thread_id or self.store.selected_id
        if thread_id in self._in_flight:
            raise ThreadBusyError(f"Thread {thread_id} is still waiting for a reply")

        settings = self.settings_provider.load()
        model = get_model(model_id or settings.selected_model)

        history = list(self.store.get_thread(thread_id).messages)
        user_message = Message(role="user", content=content, image=image)
        self.store.append_messages(thread_id, [*history, user_message])

        self._in_flight.add(thread_id)
        self.streaming_text = ""
        try:
            try:
                reply = await self.router.dispatch(model, history, user_message, settings)
            except DispatchError as e:
                logger.warning("Send to %s on thread %s failed: %s", model.id, thread_id, e)
                reply = self._apology(str(e))
            except Exception as e:
                logger.error("Unexpected error sending to %s: %s", model.id, e, exc_info=True)
                reply = self._apology(UNKNOWN_ERROR_MESSAGE)
            self._append_reply(thread_id, reply)
        finally:
            self._in_flight.discard(thread_id)
            self.streaming_text = ""
        return reply

    def _apology(self, reason: str) -> Message:
        return Message(role="assistant", content=f"{self.config.apology_prefix}{reason}")

    def _append_reply(self, thread_id: str, reply: Message) -> None:
        try:
            current = self.store.get_thread(thread_id).messages
        except ThreadNotFoundError:
            logger.warning("Thread %s was deleted before its reply arrived; dropping reply", thread_id)
            return
        self.store.append_messages(thread_id, [*current, reply])
