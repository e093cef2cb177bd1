import html

import streamlit as st

from teamtasks.auth import display_name
from teamtasks.models import PRIORITIES, STATUSES
from teamtasks.navigation import Screen, get_context
from teamtasks.presence import parse_timestamp
from teamtasks.tasks import (
    Category,
    add_comment,
    categorize,
    delete_task,
    load_task_details,
    update_task_priority,
    update_task_status,
)
from teamtasks.ui import go, page


services, user, client = page(Screen.TASK_DETAILS)

task_id = get_context(st.session_state).task_id
if not task_id:
    st.info("Pick a task from the Dashboard first.")
    st.stop()

task = load_task_details(client, task_id)
if task is None:
    st.warning("This task no longer exists or you can't see it.")
    if st.button("Back to Dashboard"):
        go(Screen.DASHBOARD)
    st.stop()

users = {u["id"]: u for u in (services.auth.list_users().data or [])}


def _name(uid):
    u = users.get(uid)
    return display_name(u) if u else "Unassigned"


is_creator = task["created_by"] == user["id"]

if st.button("← Back"):
    go(Screen.DASHBOARD)

st.title(f"🗂️ {task['title']}")
overdue = categorize(task["due_date"]) == Category.OVERDUE and task["status"] != "Completed"
st.markdown(
    f"<span class='tt-priority tt-priority-{task['priority']}'>{task['priority']}</span> "
    f"<span class='tt-task-meta'>Due {task['due_date']}{' · overdue' if overdue else ''}</span>",
    unsafe_allow_html=True,
)

c1, c2, c3 = st.columns(3)
c1.markdown(f"**Assigned to**<br>{html.escape(_name(task.get('assigned_to')))}", unsafe_allow_html=True)
c2.markdown(f"**Created by**<br>{html.escape(_name(task.get('created_by')))}", unsafe_allow_html=True)
with c3:
    if is_creator:
        status = st.selectbox("Status", STATUSES, index=STATUSES.index(task["status"]))
        if status != task["status"]:
            res = update_task_status(client, task["id"], status)
            if res.error:
                st.error(res.error.message)
            else:
                st.rerun()
        priority = st.selectbox("Priority", PRIORITIES, index=PRIORITIES.index(task["priority"]))
        if priority != task["priority"]:
            res = update_task_priority(client, task["id"], priority)
            if res.error:
                st.error(res.error.message)
            else:
                st.rerun()
    else:
        st.markdown(f"**Status**<br>{task['status']}", unsafe_allow_html=True)

if task.get("description"):
    st.markdown("#### Description")
    st.write(task["description"])

st.markdown("#### Attachments")
if not task["attachments"]:
    st.caption("No attachments.")
for att in task["attachments"]:
    path = services.storage.path_from_public_url(att["file_url"])
    blob = services.storage.download(path) if path else None
    size_kb = (att.get("file_size") or 0) / 1024
    if blob is not None and blob.ok:
        st.download_button(
            f"📎 {att['file_name']} ({size_kb:.1f} KB)",
            data=blob.data,
            file_name=att["file_name"],
            mime=att.get("file_type") or None,
            key=f"att-{att['id']}",
        )
    else:
        st.caption(f"📎 {att['file_name']} (unavailable)")

st.markdown("#### Comments")
for com in task["comments"]:
    ts = parse_timestamp(com.get("created_at") or "")
    st.markdown(
        f"<div class='tt-comment'>{html.escape(com['comment'])}"
        f"<div class='tt-comment-meta'>{html.escape(_name(com['user_id']))}"
        f"{' · ' + ts.strftime('%b %d, %H:%M') if ts else ''}</div></div>",
        unsafe_allow_html=True,
    )
with st.form("comment_form", clear_on_submit=True):
    text = st.text_area("Add a comment")
    posted = st.form_submit_button("Post")
if posted and add_comment(client, task["id"], text) is not None:
    st.rerun()

if is_creator:
    st.markdown("---")
    confirm = st.checkbox("I understand this deletes the task, its attachments and comments")
    if st.button("🗑️ Delete task", disabled=not confirm):
        if delete_task(client, services.storage, task["id"]):
            st.session_state.pop("dashboard_tasks", None)
            go(Screen.DASHBOARD)
        else:
            st.error("Could not delete this task.")
