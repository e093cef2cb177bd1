"""Row-level security policies for the data-access client.

Each table maps operations to predicates over the authenticated user id:

- ``using`` predicates are SQL expressions; rows that fail them are invisible
  to select/update/delete (silently skipped, like a database RLS USING clause).
- ``check`` predicates run in Python against the row as it would be written;
  a failing check rejects the whole write (like a WITH CHECK clause).

A missing predicate denies the operation outright.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from sqlalchemy import false, or_, true
from sqlalchemy.sql.elements import ColumnElement


Using = Callable[[Any, str], ColumnElement]
Check = Callable[[Mapping[str, Any], str], bool]


@dataclass(frozen=True)
class TablePolicy:
    select: Optional[Using] = None
    insert: Optional[Check] = None
    update_using: Optional[Using] = None
    update_check: Optional[Check] = None
    delete: Optional[Using] = None

    def select_clause(self, model, uid: str) -> ColumnElement:
        return self.select(model, uid) if self.select else false()

    def update_clause(self, model, uid: str) -> ColumnElement:
        return self.update_using(model, uid) if self.update_using else false()

    def delete_clause(self, model, uid: str) -> ColumnElement:
        return self.delete(model, uid) if self.delete else false()

    def can_insert(self, row: Mapping[str, Any], uid: str) -> bool:
        return bool(self.insert and self.insert(row, uid))

    def can_write_update(self, row: Mapping[str, Any], uid: str) -> bool:
        return bool(self.update_check and self.update_check(row, uid))


def _everyone(_model, _uid: str) -> ColumnElement:
    return true()


def _owner(column: str) -> Using:
    def using(model, uid: str) -> ColumnElement:
        return getattr(model, column) == uid

    return using


def _owner_check(column: str) -> Check:
    def check(row: Mapping[str, Any], uid: str) -> bool:
        return row.get(column) == uid

    return check


def _participant(model, uid: str) -> ColumnElement:
    return or_(model.sender_id == uid, model.receiver_id == uid)


def _participant_check(row: Mapping[str, Any], uid: str) -> bool:
    return row.get("sender_id") == uid or row.get("receiver_id") == uid


POLICIES: Dict[str, TablePolicy] = {
    "tasks": TablePolicy(
        select=_everyone,
        insert=_owner_check("created_by"),
        update_using=_owner("created_by"),
        update_check=_owner_check("created_by"),
        delete=_owner("created_by"),
    ),
    "task_attachments": TablePolicy(
        select=_everyone,
        insert=_owner_check("uploaded_by"),
        delete=_owner("uploaded_by"),
    ),
    "task_comments": TablePolicy(
        select=_everyone,
        insert=_owner_check("user_id"),
        update_using=_owner("user_id"),
        update_check=_owner_check("user_id"),
        delete=_owner("user_id"),
    ),
    "user_presence": TablePolicy(
        select=_everyone,
        insert=_owner_check("user_id"),
        update_using=_owner("user_id"),
        update_check=_owner_check("user_id"),
    ),
    "chat_messages": TablePolicy(
        select=_participant,
        insert=_owner_check("sender_id"),
        update_using=_participant,
        update_check=_participant_check,
    ),
    "calendar_events": TablePolicy(
        select=_everyone,
        insert=_owner_check("user_id"),
        update_using=_owner("user_id"),
        update_check=_owner_check("user_id"),
        delete=_owner("user_id"),
    ),
    "user_settings": TablePolicy(
        select=_owner("user_id"),
        insert=_owner_check("user_id"),
        update_using=_owner("user_id"),
        update_check=_owner_check("user_id"),
    ),
}


def policy_for(table: str) -> TablePolicy:
    # Unknown tables get the all-deny policy.
    return POLICIES.get(table, TablePolicy())
