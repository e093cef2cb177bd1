from __future__ import annotations

from teamtasks.chat import assemble_thread, load_thread, mark_thread_read, send_message, unread_counts
from teamtasks.tasks import StagedAttachment


def test_assemble_thread_excludes_third_parties_and_sorts() -> None:
    messages = [
        {"sender_id": "a", "receiver_id": "b", "message": "2", "created_at": "2025-01-02T10:00:01Z"},
        {"sender_id": "b", "receiver_id": "a", "message": "1", "created_at": "2025-01-02T10:00:00.500000Z"},
        {"sender_id": "a", "receiver_id": "c", "message": "x", "created_at": "2025-01-02T09:00:00Z"},
        {"sender_id": "c", "receiver_id": "b", "message": "y", "created_at": "2025-01-02T09:30:00Z"},
        {"sender_id": "b", "receiver_id": "a", "message": "3", "created_at": "2025-01-02T10:00:01.250000Z"},
    ]
    thread = assemble_thread(messages, "a", "b")
    assert [m["message"] for m in thread] == ["1", "2", "3"]


def test_send_ignores_blank_messages(alice, users) -> None:
    assert send_message(alice, users["bob"]["id"], "   ") is None
    assert load_thread(alice, users["alice"]["id"], users["bob"]["id"]) == []


def test_thread_contains_only_the_pair(alice, bob, carol, users) -> None:
    a, b, c = users["alice"]["id"], users["bob"]["id"], users["carol"]["id"]
    send_message(alice, b, "hi bob")
    send_message(bob, a, "hi alice")
    send_message(carol, a, "hi from carol")
    send_message(carol, b, "psst bob")

    thread = load_thread(alice, a, b)
    assert [m["message"] for m in thread] == ["hi bob", "hi alice"]
    assert all({m["sender_id"], m["receiver_id"]} == {a, b} for m in thread)


def test_carol_cannot_read_someone_elses_thread(alice, carol, users) -> None:
    a, b, c = users["alice"]["id"], users["bob"]["id"], users["carol"]["id"]
    send_message(alice, b, "private")
    assert load_thread(carol, a, b) == []


def test_opening_thread_marks_only_incoming_as_read(alice, bob, users) -> None:
    a, b = users["alice"]["id"], users["bob"]["id"]
    send_message(alice, b, "question?")
    send_message(bob, a, "answer 1")
    send_message(bob, a, "answer 2")
    assert unread_counts(alice, a) == {b: 2}
    assert unread_counts(bob, b) == {a: 1}

    fetched = load_thread(alice, a, b)
    # Rows come back as fetched, before the read flags flip.
    assert [m["is_read"] for m in fetched] == [False, False, False]

    assert unread_counts(alice, a) == {}
    # Alice's own message to Bob is untouched.
    assert unread_counts(bob, b) == {a: 1}
    assert mark_thread_read(alice, a, b) == 0


def test_message_with_attachment(services, alice, users) -> None:
    msg = send_message(
        alice,
        users["bob"]["id"],
        "see attached",
        storage=services.storage,
        attachment=StagedAttachment("diagram.png", b"\x89PNG", "image/png"),
    )
    assert msg["has_attachment"] is True
    assert msg["attachment_name"] == "diagram.png"
    path = services.storage.path_from_public_url(msg["attachment_url"])
    assert path.startswith(f"chat-attachments/{users['alice']['id']}/")
    assert services.storage.download(path).data == b"\x89PNG"
