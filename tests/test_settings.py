from __future__ import annotations

import pytest

from teamtasks.models import SETTINGS_FLAGS
from teamtasks.settings import (
    load_settings,
    update_password,
    update_profile,
    update_setting,
    upload_profile_photo,
)
from teamtasks.tasks import StagedAttachment


def test_defaults_are_inserted_once(alice, users) -> None:
    uid = users["alice"]["id"]
    first = load_settings(alice, uid)
    assert all(first[flag] is True for flag in SETTINGS_FLAGS)

    second = load_settings(alice, uid)
    assert second == first
    rows = alice.table("user_settings").select().execute().data
    assert len(rows) == 1


def test_settings_are_private(alice, bob, users) -> None:
    load_settings(alice, users["alice"]["id"])
    assert bob.table("user_settings").select().eq("user_id", users["alice"]["id"]).execute().data == []


def test_toggle_upserts_full_row(alice, users) -> None:
    uid = users["alice"]["id"]
    current = load_settings(alice, uid)
    updated, msg = update_setting(alice, current, "sound_chat", False)
    assert msg is None
    assert updated["sound_chat"] is False

    reloaded = load_settings(alice, uid)
    assert reloaded["sound_chat"] is False
    assert reloaded["notification_mentions"] is True


def test_toggle_unknown_flag_raises(alice, users) -> None:
    current = load_settings(alice, users["alice"]["id"])
    with pytest.raises(KeyError):
        update_setting(alice, current, "dark_mode", True)


def test_toggle_failure_reports_message(services, users) -> None:
    anonymous = services.client(None)
    updated, msg = update_setting(anonymous, {}, "sound_chat", False)
    assert updated["sound_chat"] is False
    assert msg.text == "Failed to update settings"
    assert not msg.ok


def test_password_messages(services, users) -> None:
    session = {}
    services.auth.sign_in(session, "alice@example.com", "secret123")

    assert update_password(services.auth, session, "abcdef", "abcdeg").text == "Passwords do not match!"
    assert update_password(services.auth, session, "abc", "abc").text == "Password must be at least 6 characters!"

    msg = update_password(services.auth, session, "n3w-secret", "n3w-secret")
    assert msg.ok
    assert msg.text == "Password updated successfully!"
    assert services.auth.sign_in({}, "alice@example.com", "n3w-secret").ok


def test_profile_update(services, users) -> None:
    session = {}
    services.auth.sign_in(session, "alice@example.com", "secret123")

    msg = update_profile(services.auth, session, name="Alice Liddell", email="alice@example.com")
    assert msg.ok
    assert msg.text == "Profile updated successfully!"
    assert services.auth.get_user(session)["name"] == "Alice Liddell"

    clash = update_profile(services.auth, session, name="Alice", email="bob@example.com")
    assert not clash.ok
    assert "already been registered" in clash.text


def test_profile_photo_replaces_previous(services, alice, users) -> None:
    uid = users["alice"]["id"]
    current = load_settings(alice, uid)

    current, msg = upload_profile_photo(alice, services.storage, current, StagedAttachment("me.png", b"one", "image/png"))
    assert msg.ok
    first_path = services.storage.path_from_public_url(current["profile_photo_url"])
    assert first_path.startswith(f"profile-photos/{uid}/")

    current, msg = upload_profile_photo(alice, services.storage, current, StagedAttachment("me2.jpg", b"two", "image/jpeg"))
    assert msg.ok
    assert load_settings(alice, uid)["profile_photo_url"] == current["profile_photo_url"]
    assert services.storage.download(first_path).error.code == "not_found"
