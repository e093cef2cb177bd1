"""Direct messages between two team members.

There is no push channel: an open thread is re-fetched on a short timer
(CHAT_POLL_SECONDS) and right after every send.
"""
from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from teamtasks.backend import BackendClient
from teamtasks.presence import parse_timestamp
from teamtasks.storage import StorageBucket
from teamtasks.tasks import StagedAttachment


logger = logging.getLogger(__name__)

CHAT_POLL_SECONDS = 3


def in_thread(message: Dict[str, Any], a: str, b: str) -> bool:
    pair = (message.get("sender_id"), message.get("receiver_id"))
    return pair == (a, b) or pair == (b, a)


def assemble_thread(messages: Iterable[Dict[str, Any]], a: str, b: str) -> List[Dict[str, Any]]:
    """Messages exchanged between a and b, oldest first."""
    thread = [m for m in messages if in_thread(m, a, b)]
    thread.sort(key=lambda m: parse_timestamp(m.get("created_at") or "") or datetime.min)
    return thread


def mark_thread_read(client: BackendClient, viewer_id: str, other_id: str) -> int:
    res = (
        client.table("chat_messages")
        .update({"is_read": True})
        .eq("receiver_id", viewer_id)
        .eq("sender_id", other_id)
        .eq("is_read", False)
        .execute()
    )
    if res.error:
        logger.error("Error marking messages read: %s", res.error)
        return 0
    return len(res.data)


def load_thread(client: BackendClient, viewer_id: str, other_id: str) -> Optional[List[Dict[str, Any]]]:
    """Fetch the thread, then mark what the other party sent to the viewer as read.

    The returned rows are as fetched, before the read flags flip.
    """
    res = (
        client.table("chat_messages")
        .select()
        .or_pairs(
            {"sender_id": viewer_id, "receiver_id": other_id},
            {"sender_id": other_id, "receiver_id": viewer_id},
        )
        .order("created_at")
        .execute()
    )
    if res.error:
        logger.error("Error loading messages: %s", res.error)
        return None
    mark_thread_read(client, viewer_id, other_id)
    return res.data


def send_message(
    client: BackendClient,
    receiver_id: str,
    text: str,
    *,
    storage: Optional[StorageBucket] = None,
    attachment: Optional[StagedAttachment] = None,
) -> Optional[Dict[str, Any]]:
    """Send ``text`` from the signed-in user; blank messages are ignored."""
    if not (text or "").strip() or not receiver_id or not client.user_id:
        return None

    row: Dict[str, Any] = {
        "sender_id": client.user_id,
        "receiver_id": receiver_id,
        "message": text,
        "has_attachment": False,
        "is_read": False,
    }
    if attachment is not None and storage is not None:
        ext = attachment.file_name.split(".")[-1]
        path = f"chat-attachments/{client.user_id}/{uuid.uuid4().hex}.{ext}"
        up = storage.upload(path, attachment.data, owner_id=client.user_id, content_type=attachment.content_type)
        if up.error:
            logger.warning("Chat attachment %s not uploaded: %s", attachment.file_name, up.error)
        else:
            row.update({
                "has_attachment": True,
                "attachment_url": storage.get_public_url(path),
                "attachment_name": attachment.file_name,
            })

    res = client.table("chat_messages").insert(row).single()
    if res.error:
        logger.error("Error sending message: %s", res.error)
        return None
    return res.data


def unread_counts(client: BackendClient, viewer_id: str) -> Dict[str, int]:
    """Unread messages addressed to the viewer, keyed by sender."""
    res = (
        client.table("chat_messages")
        .select("sender_id")
        .eq("receiver_id", viewer_id)
        .eq("is_read", False)
        .execute()
    )
    if res.error:
        logger.error("Error counting unread messages: %s", res.error)
        return {}
    return dict(Counter(m["sender_id"] for m in res.data))
