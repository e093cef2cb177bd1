"""Presence heartbeat.

``is_online`` is a liveness hint only: nothing expires it server-side, so a
client that disappears without running ``unload`` stays "online" until its
next heartbeat says otherwise.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from teamtasks.backend import BackendClient


logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL_SECONDS = 30


def _utcnow() -> datetime:
    return datetime.utcnow()


def parse_timestamp(value: Union[str, datetime]) -> Optional[datetime]:
    if isinstance(value, datetime):
        ts = value
    else:
        raw = (value or "").strip()
        if raw.endswith("Z"):
            raw = raw[:-1]
        try:
            ts = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def format_last_seen(last_seen: Union[str, datetime], now: Optional[datetime] = None) -> str:
    seen = parse_timestamp(last_seen)
    if seen is None:
        return "Unknown"
    now = now or _utcnow()
    diff_mins = int((now - seen).total_seconds() // 60)
    diff_hours = diff_mins // 60
    diff_days = diff_hours // 24
    if diff_mins < 1:
        return "Just now"
    if diff_mins < 60:
        return f"{diff_mins}m ago"
    if diff_hours < 24:
        return f"{diff_hours}h ago"
    return f"{diff_days}d ago"


class PresenceHeartbeat:
    """Per-session heartbeat for the signed-in user.

    ``mount`` marks the user online, ``tick`` is the timer callback (it only
    beats while the page is visible), ``on_visibility_change`` follows the
    page visibility and ``unload`` marks the user offline and stops the timer.
    """

    def __init__(
        self,
        client: BackendClient,
        *,
        interval_seconds: int = HEARTBEAT_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.interval = timedelta(seconds=max(1, int(interval_seconds)))
        self._clock = clock
        self.mounted = False
        self.visible = True
        self.last_beat: Optional[datetime] = None
        self.last_state: Optional[bool] = None

    def _upsert(self, is_online: bool) -> bool:
        uid = self.client.user_id
        if not uid:
            return False
        now = self._clock()
        res = self.client.table("user_presence").upsert({
            "user_id": uid,
            "is_online": is_online,
            "last_seen": now,
            "updated_at": now,
        }).execute()
        if res.error:
            logger.error("Error updating presence: %s", res.error)
            return False
        self.last_beat = now
        self.last_state = is_online
        return True

    def mount(self) -> bool:
        self.mounted = True
        self.visible = True
        return self._upsert(True)

    def due(self, now: Optional[datetime] = None) -> bool:
        if not (self.mounted and self.visible):
            return False
        if self.last_beat is None:
            return True
        return (now or self._clock()) - self.last_beat >= self.interval

    def tick(self) -> bool:
        if not (self.mounted and self.visible):
            return False
        return self._upsert(True)

    def on_visibility_change(self, hidden: bool) -> bool:
        self.visible = not hidden
        return self._upsert(not hidden)

    def unload(self) -> bool:
        # Best effort: a failure here leaves a stale "online" row behind.
        self.mounted = False
        return self._upsert(False)
