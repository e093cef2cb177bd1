"""Task lifecycle: due-date categories, filter tiles, creation with attachments.

The categorization here is shared by the Dashboard and My Tasks pages so the
count tiles and the filtered list always agree.
"""
from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

from teamtasks.auth import display_name
from teamtasks.backend import BackendClient, BackendError, Result
from teamtasks.models import PRIORITIES, STATUSES
from teamtasks.storage import StorageBucket


logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str, None]


class Category(str, enum.Enum):
    OVERDUE = "overdue"
    TODAY = "today"
    NEXT = "next"


def _to_date(value: DateLike) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.rstrip("Z")).date()
    except ValueError:
        return None


def categorize(due_date: DateLike, today: DateLike = None) -> Category:
    """Bucket a due date relative to today, comparing calendar days only.

    Unparseable dates are neither before nor equal to today, so they land in NEXT.
    """
    today_d = _to_date(today) or date.today()
    due = _to_date(due_date)
    if due is None:
        return Category.NEXT
    if due < today_d:
        return Category.OVERDUE
    if due == today_d:
        return Category.TODAY
    return Category.NEXT


def filter_tasks(tasks: Iterable[Dict[str, Any]], category: Optional[Category], today: DateLike = None) -> List[Dict[str, Any]]:
    tasks = list(tasks)
    if category is None:
        return tasks
    return [t for t in tasks if categorize(t.get("due_date"), today) == category]


def count_by_category(tasks: Iterable[Dict[str, Any]], today: DateLike = None) -> Dict[Category, int]:
    counts = {c: 0 for c in Category}
    for t in tasks:
        counts[categorize(t.get("due_date"), today)] += 1
    return counts


@dataclass
class TaskFilter:
    """Filter-tile state: selecting the active tile again clears it."""

    active: Optional[Category] = None

    def select(self, category: Category) -> None:
        self.active = None if self.active == category else Category(category)

    def show_all(self) -> None:
        self.active = None

    def apply(self, tasks: Iterable[Dict[str, Any]], today: DateLike = None) -> List[Dict[str, Any]]:
        return filter_tasks(tasks, self.active, today)


# ---------------- loading ----------------

def _names_by_id(users: Iterable[Dict[str, Any]]) -> Dict[str, str]:
    return {u["id"]: display_name(u) for u in users}


def load_tasks(client: BackendClient, users: Iterable[Dict[str, Any]] = ()) -> Optional[List[Dict[str, Any]]]:
    """All visible tasks ordered by due date, with ``assigned_to_name`` filled in.

    Returns None on error so callers keep their previous list.
    """
    res = client.table("tasks").select().order("due_date").order("created_at").execute()
    if res.error:
        logger.error("Error loading tasks: %s", res.error)
        return None
    names = _names_by_id(users)
    out = []
    for t in res.data:
        t["assigned_to_name"] = names.get(t.get("assigned_to")) or "Unassigned"
        out.append(t)
    return out


def load_my_tasks(client: BackendClient, user_id: str) -> Optional[List[Dict[str, Any]]]:
    res = client.table("tasks").select().eq("assigned_to", user_id).order("due_date").execute()
    if res.error:
        logger.error("Error loading tasks: %s", res.error)
        return None
    return res.data


def load_task_details(client: BackendClient, task_id: str) -> Optional[Dict[str, Any]]:
    """Task row plus its ``attachments`` and ``comments`` (oldest first)."""
    res = client.table("tasks").select().eq("id", task_id).maybe_single()
    if res.error:
        logger.error("Error loading task %s: %s", task_id, res.error)
        return None
    if res.data is None:
        return None
    task = res.data

    att = client.table("task_attachments").select().eq("task_id", task_id).order("created_at").execute()
    if att.error:
        logger.error("Error loading attachments for %s: %s", task_id, att.error)
    task["attachments"] = att.data or []

    com = client.table("task_comments").select().eq("task_id", task_id).order("created_at").execute()
    if com.error:
        logger.error("Error loading comments for %s: %s", task_id, com.error)
    task["comments"] = com.data or []
    return task


def tasks_to_df(tasks: Sequence[Dict[str, Any]]) -> pd.DataFrame:
    columns = ["title", "assigned_to_name", "priority", "status", "due_date", "category"]
    if not tasks:
        return pd.DataFrame(columns=columns)
    df = pd.json_normalize(list(tasks))
    if "assigned_to_name" not in df.columns:
        df["assigned_to_name"] = "Unassigned"
    df["category"] = [categorize(d).value for d in df["due_date"]]
    df["due_date"] = pd.to_datetime(df["due_date"], errors="coerce").dt.date
    return df[columns]


# ---------------- creation ----------------

@dataclass
class StagedAttachment:
    """A file picked in the form but not uploaded yet."""

    file_name: str
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class NewTask:
    title: str = ""
    due_date: DateLike = None
    assigned_to: Optional[str] = None
    description: str = ""
    priority: str = "Medium"
    attachments: List[StagedAttachment] = field(default_factory=list)

    def is_complete(self) -> bool:
        return bool((self.title or "").strip() and self.due_date and self.assigned_to)


def attachment_path(task_id: str, file_name: str) -> str:
    # Random object name; keep whatever follows the last dot as the extension.
    ext = file_name.split(".")[-1]
    return f"task-attachments/{task_id}/{uuid.uuid4().hex}.{ext}"


def upload_attachments(
    client: BackendClient,
    storage: StorageBucket,
    task_id: str,
    attachments: Iterable[StagedAttachment],
) -> List[Dict[str, Any]]:
    """Upload one by one and record each success; failures are skipped."""
    recorded = []
    for attachment in attachments:
        path = attachment_path(task_id, attachment.file_name)
        up = storage.upload(path, attachment.data, owner_id=client.user_id, content_type=attachment.content_type)
        if up.error:
            logger.warning("Skipping attachment %s: %s", attachment.file_name, up.error)
            continue
        res = client.table("task_attachments").insert({
            "task_id": task_id,
            "file_name": attachment.file_name,
            "file_url": storage.get_public_url(path),
            "file_type": attachment.content_type,
            "file_size": attachment.size,
            "uploaded_by": client.user_id,
        }).single()
        if res.error:
            logger.warning("Attachment record for %s not saved: %s", attachment.file_name, res.error)
            continue
        recorded.append(res.data)
    return recorded


def create_task(client: BackendClient, storage: StorageBucket, new_task: NewTask) -> Optional[Dict[str, Any]]:
    """Insert a task for the signed-in user and upload its staged attachments.

    Missing title, due date or assignee makes this a no-op returning None.
    """
    if not new_task.is_complete() or not client.user_id:
        return None

    res = client.table("tasks").insert({
        "title": new_task.title.strip(),
        "description": new_task.description or "",
        "assigned_to": new_task.assigned_to,
        "created_by": client.user_id,
        "priority": new_task.priority,
        "due_date": _to_date(new_task.due_date) or new_task.due_date,
        "status": "Not Started",
    }).single()
    if res.error:
        logger.error("Error creating task: %s", res.error)
        return None

    task = res.data
    if new_task.attachments:
        task["attachments"] = upload_attachments(client, storage, task["id"], new_task.attachments)
    logger.info("Task %s created by %s", task["id"], client.user_id)
    return task


# ---------------- updates ----------------

def update_task_status(client: BackendClient, task_id: str, status: str) -> Result:
    if status not in STATUSES:
        return Result(error=BackendError(f"Unknown status: {status}", "invalid_value"))
    res = client.table("tasks").update({"status": status}).eq("id", task_id).execute()
    if res.error:
        logger.error("Error updating task %s: %s", task_id, res.error)
    elif not res.data:
        # Only the creator may update; other rows are invisible to the update.
        return Result(error=BackendError("Only the task creator can change its status", "rls_violation"))
    return res


def update_task_priority(client: BackendClient, task_id: str, priority: str) -> Result:
    if priority not in PRIORITIES:
        return Result(error=BackendError(f"Unknown priority: {priority}", "invalid_value"))
    res = client.table("tasks").update({"priority": priority}).eq("id", task_id).execute()
    if res.error:
        logger.error("Error updating task %s: %s", task_id, res.error)
    return res


def add_comment(client: BackendClient, task_id: str, text: str) -> Optional[Dict[str, Any]]:
    text = (text or "").strip()
    if not text or not client.user_id:
        return None
    res = client.table("task_comments").insert({
        "task_id": task_id,
        "user_id": client.user_id,
        "comment": text,
    }).single()
    if res.error:
        logger.error("Error adding comment: %s", res.error)
        return None
    return res.data


def delete_task(client: BackendClient, storage: StorageBucket, task_id: str) -> bool:
    """Delete a task the caller created; attachments and comments go with it."""
    att = client.table("task_attachments").select("file_url").eq("task_id", task_id).execute()
    res = client.table("tasks").delete().eq("id", task_id).execute()
    if res.error:
        logger.error("Error deleting task %s: %s", task_id, res.error)
        return False
    if not res.data:
        return False
    paths = [p for p in (storage.path_from_public_url(a["file_url"]) for a in (att.data or [])) if p]
    if paths:
        removed = storage.remove(paths, user_id=client.user_id)
        if removed.error:
            logger.warning("Error removing attachment objects for %s: %s", task_id, removed.error)
    return True
