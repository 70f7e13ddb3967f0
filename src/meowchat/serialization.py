"""Convert conversation threads to and from their stored JSON form."""

import json

from .core import DEFAULT_THREAD_NAME, ConversationThread, Message


def message_to_dict(msg: Message) -> dict:
    """Convert a Message to a JSON-serializable dict."""
    data = {"role": msg.role, "content": msg.content}
    if msg.image:
        data["image"] = msg.image
    return data


def message_from_dict(data: dict) -> Message:
    return Message(
        role=data.get("role", "user"),
        content=data.get("content", ""),
        image=data.get("image") or None,
    )


def thread_to_dict(thread: ConversationThread) -> dict:
    """Convert a ConversationThread to a JSON-serializable dict."""
    return {
        "id": thread.id,
        "name": thread.name,
        "messages": [message_to_dict(m) for m in thread.messages],
        "createdAt": thread.created_at,
        "updatedAt": thread.updated_at,
    }


def thread_from_dict(data: dict) -> ConversationThread:
    created = int(data.get("createdAt", 0))
    return ConversationThread(
        id=str(data["id"]),
        name=data.get("name") or DEFAULT_THREAD_NAME,
        messages=[message_from_dict(m) for m in data.get("messages", [])],
        created_at=created,
        updated_at=int(data.get("updatedAt", created)),
    )


def threads_to_json(threads: list[ConversationThread]) -> str:
    return json.dumps([thread_to_dict(t) for t in threads], ensure_ascii=False)


def threads_from_json(text: str) -> list[ConversationThread]:
    """Parse a stored thread collection, dropping duplicate ids.

    Raises ValueError when the JSON is not an array of thread objects.
    """
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("thread collection is not an array")
    threads = []
    seen_ids = set()
    for item in data:
        if not isinstance(item, dict):
            raise ValueError("thread collection holds a non-object entry")
        if not all(isinstance(m, dict) for m in item.get("messages", [])):
            raise ValueError(f"thread {item.get('id')!r} holds a non-object message")
        thread = thread_from_dict(item)
        if thread.id in seen_ids:
            continue
        seen_ids.add(thread.id)
        threads.append(thread)
    return threads
