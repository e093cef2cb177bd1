from __future__ import annotations

from datetime import date, datetime

import pandas as pd

from teamtasks.tasks import (
    Category,
    NewTask,
    StagedAttachment,
    TaskFilter,
    add_comment,
    attachment_path,
    categorize,
    count_by_category,
    create_task,
    delete_task,
    filter_tasks,
    load_task_details,
    load_tasks,
    tasks_to_df,
    update_task_priority,
    update_task_status,
)

from .fakes import FlakyStorage


TODAY = date(2025, 1, 2)


def test_categorize_scenarios() -> None:
    assert categorize("2025-01-01", TODAY) == Category.OVERDUE
    assert categorize("2025-01-02", TODAY) == Category.TODAY
    assert categorize("2025-01-03", TODAY) == Category.NEXT


def test_categorize_ignores_time_of_day() -> None:
    assert categorize(datetime(2025, 1, 2, 23, 59), datetime(2025, 1, 2, 0, 1)) == Category.TODAY
    assert categorize("2025-01-02T08:00:00Z", TODAY) == Category.TODAY


def test_unparseable_due_date_is_next() -> None:
    assert categorize("not a date", TODAY) == Category.NEXT
    assert categorize(None, TODAY) == Category.NEXT


def test_every_task_lands_in_exactly_one_tile() -> None:
    tasks = [{"due_date": d} for d in ("2024-12-30", "2025-01-01", "2025-01-02", "2025-02-01", "bogus")]
    counts = count_by_category(tasks, TODAY)
    assert counts == {Category.OVERDUE: 2, Category.TODAY: 1, Category.NEXT: 2}
    assert sum(counts.values()) == len(tasks)
    for category in Category:
        assert len(filter_tasks(tasks, category, TODAY)) == counts[category]


def test_task_filter_toggles_and_clears() -> None:
    tasks = [{"due_date": "2025-01-01"}, {"due_date": "2025-01-05"}]
    flt = TaskFilter()
    assert flt.apply(tasks, TODAY) == tasks

    flt.select(Category.OVERDUE)
    assert flt.apply(tasks, TODAY) == [tasks[0]]

    flt.select(Category.OVERDUE)
    assert flt.active is None

    flt.select(Category.NEXT)
    flt.show_all()
    assert flt.apply(tasks, TODAY) == tasks


def test_attachment_path_keeps_extension() -> None:
    path = attachment_path("task-1", "report.final.pdf")
    assert path.startswith("task-attachments/task-1/")
    assert path.endswith(".pdf")


def test_create_task_requires_title_due_date_and_assignee(services, users, alice) -> None:
    bob_id = users["bob"]["id"]
    assert create_task(alice, services.storage, NewTask(title="", due_date=TODAY, assigned_to=bob_id)) is None
    assert create_task(alice, services.storage, NewTask(title="Ship", due_date=None, assigned_to=bob_id)) is None
    assert create_task(alice, services.storage, NewTask(title="Ship", due_date=TODAY, assigned_to=None)) is None
    assert load_tasks(alice) == []


def test_create_task_defaults(services, users, alice) -> None:
    task = create_task(alice, services.storage, NewTask(
        title="  Write release notes ",
        due_date=TODAY,
        assigned_to=users["bob"]["id"],
    ))
    assert task is not None
    assert task["title"] == "Write release notes"
    assert task["status"] == "Not Started"
    assert task["priority"] == "Medium"
    assert task["created_by"] == users["alice"]["id"]
    assert task["due_date"] == "2025-01-02"


def test_failed_upload_does_not_stop_later_attachments(services, users, alice, tmp_path) -> None:
    storage = FlakyStorage("attachments", str(tmp_path / "flaky"), fail_calls=[0])
    task = create_task(alice, storage, NewTask(
        title="Spec review",
        due_date=TODAY,
        assigned_to=users["bob"]["id"],
        attachments=[
            StagedAttachment("broken.txt", b"nope", "text/plain"),
            StagedAttachment("notes.md", b"# notes", "text/markdown"),
        ],
    ))
    assert task is not None
    assert len(storage.attempts) == 2
    assert [a["file_name"] for a in task["attachments"]] == ["notes.md"]

    details = load_task_details(alice, task["id"])
    assert len(details["attachments"]) == 1
    att = details["attachments"][0]
    assert att["file_type"] == "text/markdown"
    assert att["file_size"] == len(b"# notes")
    assert att["file_url"].startswith("/storage/attachments/task-attachments/" + task["id"] + "/")
    assert att["file_url"].endswith(".md")


def test_load_tasks_orders_by_due_date_and_names_assignee(services, users, alice) -> None:
    bob_id = users["bob"]["id"]
    create_task(alice, services.storage, NewTask(title="Later", due_date="2025-03-01", assigned_to=bob_id))
    create_task(alice, services.storage, NewTask(title="Sooner", due_date="2025-01-10", assigned_to=bob_id))

    listed = load_tasks(alice, [users["alice"], users["bob"]])
    assert [t["title"] for t in listed] == ["Sooner", "Later"]
    assert {t["assigned_to_name"] for t in listed} == {"Bob"}


def test_only_creator_can_change_status(services, users, alice, bob) -> None:
    task = create_task(alice, services.storage, NewTask(title="Fix", due_date=TODAY, assigned_to=users["bob"]["id"]))

    res = update_task_status(bob, task["id"], "Completed")
    assert res.error is not None
    assert res.error.code == "rls_violation"

    res = update_task_status(alice, task["id"], "In Progress")
    assert res.ok
    assert res.data[0]["status"] == "In Progress"

    assert update_task_status(alice, task["id"], "Done").error.code == "invalid_value"


def test_delete_task_cascades_to_attachments_and_comments(services, users, alice, bob) -> None:
    task = create_task(alice, services.storage, NewTask(
        title="Cleanup",
        due_date=TODAY,
        assigned_to=users["bob"]["id"],
        attachments=[StagedAttachment("a.txt", b"a", "text/plain")],
    ))
    assert add_comment(bob, task["id"], "On it") is not None
    stored_path = services.storage.path_from_public_url(task["attachments"][0]["file_url"])
    assert services.storage.download(stored_path).ok

    assert delete_task(bob, services.storage, task["id"]) is False
    assert delete_task(alice, services.storage, task["id"]) is True

    assert load_task_details(alice, task["id"]) is None
    assert alice.table("task_attachments").select().eq("task_id", task["id"]).execute().data == []
    assert alice.table("task_comments").select().eq("task_id", task["id"]).execute().data == []
    assert services.storage.download(stored_path).error.code == "not_found"


def test_tasks_to_df_columns() -> None:
    df = tasks_to_df([{"title": "A", "priority": "Low", "status": "Not Started", "due_date": "2025-01-02"}])
    assert list(df.columns) == ["title", "assigned_to_name", "priority", "status", "due_date", "category"]
    assert df.loc[0, "assigned_to_name"] == "Unassigned"
    assert isinstance(tasks_to_df([]), pd.DataFrame)


def test_priority_change_by_creator(services, users, alice) -> None:
    task = create_task(alice, services.storage, NewTask(title="Triage", due_date=TODAY, assigned_to=users["bob"]["id"]))
    assert update_task_priority(alice, task["id"], "High").data[0]["priority"] == "High"
    assert update_task_priority(alice, task["id"], "Urgent").error.code == "invalid_value"
