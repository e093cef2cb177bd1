"""Shared team calendar: month grid arithmetic and events."""
from __future__ import annotations

import calendar as _cal
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from teamtasks.backend import BackendClient
from teamtasks.models import EVENT_TYPES


logger = logging.getLogger(__name__)

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


@dataclass(frozen=True)
class MonthLayout:
    year: int
    month: int
    days_in_month: int
    starting_weekday: int  # 0 = Sunday

    @property
    def title(self) -> str:
        return f"{_cal.month_name[self.month]} {self.year}"

    def weeks(self) -> List[List[Optional[int]]]:
        """Rows of seven cells; None pads before day 1 and after the last day."""
        cells: List[Optional[int]] = [None] * self.starting_weekday
        cells.extend(range(1, self.days_in_month + 1))
        while len(cells) % 7:
            cells.append(None)
        return [cells[i:i + 7] for i in range(0, len(cells), 7)]


def month_layout(reference: date) -> MonthLayout:
    first_weekday_mon0, days = _cal.monthrange(reference.year, reference.month)
    return MonthLayout(
        year=reference.year,
        month=reference.month,
        days_in_month=days,
        starting_weekday=(first_weekday_mon0 + 1) % 7,
    )


def previous_month(reference: date) -> date:
    if reference.month == 1:
        return date(reference.year - 1, 12, 1)
    return date(reference.year, reference.month - 1, 1)


def next_month(reference: date) -> date:
    if reference.month == 12:
        return date(reference.year + 1, 1, 1)
    return date(reference.year, reference.month + 1, 1)


def day_key(year: int, month: int, day: int) -> str:
    return date(year, month, day).isoformat()


def events_for_day(events: Iterable[Dict[str, Any]], year: int, month: int, day: int) -> List[Dict[str, Any]]:
    key = day_key(year, month, day)
    return [e for e in events if e.get("event_date") == key]


@dataclass
class NewEvent:
    title: str = ""
    event_type: str = "Meeting"
    meeting_link: str = ""
    notes: str = ""


def load_events(client: BackendClient) -> Optional[List[Dict[str, Any]]]:
    res = client.table("calendar_events").select().order("event_date").execute()
    if res.error:
        logger.error("Error loading events: %s", res.error)
        return None
    return res.data


def create_event(client: BackendClient, event_date: Optional[date], new_event: NewEvent) -> Optional[Dict[str, Any]]:
    """Add an event for the signed-in user; no date or no title is a no-op."""
    title = (new_event.title or "").strip()
    if event_date is None or not title or not client.user_id:
        return None
    if new_event.event_type not in EVENT_TYPES:
        logger.error("Error creating event: unknown type %r", new_event.event_type)
        return None

    link = (new_event.meeting_link or "").strip() if new_event.event_type == "Meeting" else ""
    res = client.table("calendar_events").insert({
        "user_id": client.user_id,
        "title": title,
        "event_type": new_event.event_type,
        "event_date": event_date,
        "meeting_link": link or None,
        "notes": (new_event.notes or "").strip() or None,
    }).single()
    if res.error:
        logger.error("Error creating event: %s", res.error)
        return None
    return res.data


def delete_event(client: BackendClient, event_id: str) -> bool:
    res = client.table("calendar_events").delete().eq("id", event_id).execute()
    if res.error:
        logger.error("Error deleting event %s: %s", event_id, res.error)
        return False
    return bool(res.data)
