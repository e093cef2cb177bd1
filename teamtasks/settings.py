"""Per-user notification settings and profile management."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, MutableMapping, Optional, Tuple

from teamtasks.auth import MIN_PASSWORD_LENGTH, AuthService
from teamtasks.backend import BackendClient
from teamtasks.models import SETTINGS_FLAGS
from teamtasks.storage import StorageBucket
from teamtasks.tasks import StagedAttachment


logger = logging.getLogger(__name__)

SETTING_LABELS = {
    "notification_task_assigned": "Task assigned to me",
    "notification_task_completed": "Task completed",
    "notification_mentions": "Mentions",
    "notification_chat_messages": "Chat messages",
    "sound_notifications": "Notification sounds",
    "sound_chat": "Chat sounds",
}


def default_settings() -> Dict[str, Any]:
    return {flag: True for flag in SETTINGS_FLAGS}


@dataclass(frozen=True)
class Message:
    """Feedback shown above the settings forms."""

    kind: str  # "success" | "error"
    text: str

    @property
    def ok(self) -> bool:
        return self.kind == "success"


def load_settings(client: BackendClient, user_id: str) -> Optional[Dict[str, Any]]:
    """The user's settings row, inserting the defaults on first load."""
    res = client.table("user_settings").select().eq("user_id", user_id).maybe_single()
    if res.error:
        logger.error("Error loading settings: %s", res.error)
        return None
    if res.data is not None:
        return res.data

    row = {"user_id": user_id, **default_settings()}
    created = client.table("user_settings").insert(row).single()
    if created.error:
        logger.error("Error creating default settings: %s", created.error)
        return row
    return created.data


def update_setting(client: BackendClient, current: Dict[str, Any], key: str, value: bool) -> Tuple[Dict[str, Any], Optional[Message]]:
    """Flip one flag and upsert the whole row.

    Returns ``(settings, message)``; the new settings are kept locally even
    when the write fails, and message is None on success.
    """
    if key not in SETTINGS_FLAGS:
        raise KeyError(key)
    updated = {**current, key: bool(value)}
    row = {flag: bool(updated.get(flag, True)) for flag in SETTINGS_FLAGS}
    row["user_id"] = client.user_id
    row["profile_photo_url"] = updated.get("profile_photo_url")
    row["updated_at"] = datetime.utcnow()
    res = client.table("user_settings").upsert(row).execute()
    if res.error:
        logger.error("Error updating settings: %s", res.error)
        return updated, Message("error", "Failed to update settings")
    return updated, None


def update_profile(auth: AuthService, session_state: MutableMapping[str, Any], *, name: str, email: str) -> Message:
    res = auth.update_user(session_state, name=name, email=email)
    if res.error:
        return Message("error", res.error.message)
    return Message("success", "Profile updated successfully!")


def update_password(auth: AuthService, session_state: MutableMapping[str, Any], new_password: str, confirm_password: str) -> Message:
    if new_password != confirm_password:
        return Message("error", "Passwords do not match!")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return Message("error", f"Password must be at least {MIN_PASSWORD_LENGTH} characters!")
    res = auth.update_user(session_state, password=new_password)
    if res.error:
        return Message("error", res.error.message)
    return Message("success", "Password updated successfully!")


def upload_profile_photo(
    client: BackendClient,
    storage: StorageBucket,
    current: Dict[str, Any],
    photo: StagedAttachment,
) -> Tuple[Dict[str, Any], Message]:
    ext = photo.file_name.split(".")[-1]
    path = f"profile-photos/{client.user_id}/{uuid.uuid4().hex}.{ext}"
    up = storage.upload(path, photo.data, owner_id=client.user_id, content_type=photo.content_type)
    if up.error:
        logger.error("Error uploading profile photo: %s", up.error)
        return current, Message("error", "Failed to upload photo")

    url = storage.get_public_url(path)
    res = client.table("user_settings").update({
        "profile_photo_url": url,
        "updated_at": datetime.utcnow(),
    }).eq("user_id", client.user_id).execute()
    if res.error or not res.data:
        logger.error("Error saving profile photo: %s", res.error)
        return current, Message("error", "Failed to update settings")

    old_path = storage.path_from_public_url(current.get("profile_photo_url") or "")
    if old_path:
        storage.remove([old_path], user_id=client.user_id)
    return {**current, "profile_photo_url": url}, Message("success", "Profile photo updated!")
