from __future__ import annotations

from datetime import datetime

from teamtasks.presence import PresenceHeartbeat, format_last_seen, parse_timestamp


def _row(client, user_id):
    return client.table("user_presence").select().eq("user_id", user_id).single().data


def test_format_last_seen() -> None:
    now = datetime(2025, 1, 2, 12, 0, 0)
    assert format_last_seen("2025-01-02T11:59:30Z", now) == "Just now"
    assert format_last_seen("2025-01-02T11:45:00Z", now) == "15m ago"
    assert format_last_seen("2025-01-02T09:00:00Z", now) == "3h ago"
    assert format_last_seen("2024-12-30T12:00:00Z", now) == "3d ago"
    assert format_last_seen("garbage", now) == "Unknown"


def test_parse_timestamp_normalizes_to_naive_utc() -> None:
    assert parse_timestamp("2025-01-02T10:00:00+02:00") == datetime(2025, 1, 2, 8, 0, 0)
    assert parse_timestamp("2025-01-02T10:00:00Z") == datetime(2025, 1, 2, 10, 0, 0)


def test_mount_marks_online(alice, users, clock) -> None:
    hb = PresenceHeartbeat(alice, clock=clock)
    assert hb.mount()
    row = _row(alice, users["alice"]["id"])
    assert row["is_online"] is True
    assert parse_timestamp(row["last_seen"]) == clock.now


def test_tick_is_due_every_interval(alice, clock) -> None:
    hb = PresenceHeartbeat(alice, interval_seconds=30, clock=clock)
    assert not hb.due()
    hb.mount()
    assert not hb.due()
    clock.advance(29)
    assert not hb.due()
    clock.advance(1)
    assert hb.due()
    assert hb.tick()
    assert hb.last_beat == clock.now
    assert not hb.due()


def test_hidden_page_stops_beating(alice, users, clock) -> None:
    hb = PresenceHeartbeat(alice, clock=clock)
    hb.mount()
    hb.on_visibility_change(hidden=True)
    assert _row(alice, users["alice"]["id"])["is_online"] is False

    clock.advance(120)
    assert not hb.due()
    assert not hb.tick()


def test_show_after_offline_refreshes_last_seen(alice, users, clock) -> None:
    uid = users["alice"]["id"]
    hb = PresenceHeartbeat(alice, clock=clock)
    hb.mount()
    hb.on_visibility_change(hidden=True)
    offline_seen = parse_timestamp(_row(alice, uid)["last_seen"])

    clock.advance(300)
    hb.on_visibility_change(hidden=False)
    row = _row(alice, uid)
    assert row["is_online"] is True
    assert parse_timestamp(row["last_seen"]) > offline_seen
    assert parse_timestamp(row["updated_at"]) == clock.now


def test_unload_marks_offline(alice, bob, users, clock) -> None:
    hb = PresenceHeartbeat(alice, clock=clock)
    hb.mount()
    hb.unload()
    assert not hb.mounted
    # Presence is readable by every signed-in user.
    assert _row(bob, users["alice"]["id"])["is_online"] is False


def test_heartbeat_cannot_write_for_someone_else(alice, users) -> None:
    res = alice.table("user_presence").upsert({"user_id": users["bob"]["id"], "is_online": True}).execute()
    assert res.error is not None
    assert res.error.code == "rls_violation"
