"""Helpers shared by every page script: bootstrap, auth guard, sidebar, heartbeat."""
from __future__ import annotations

import html
import logging
from typing import Any, Dict, List, Optional, Tuple

import streamlit as st

from teamtasks.backend import BackendClient
from teamtasks.config import get_config
from teamtasks.logging_setup import setup_logging
from teamtasks.navigation import SIDEBAR_SCREENS, Screen, navigate
from teamtasks.presence import PresenceHeartbeat
from teamtasks.runtime import Services, get_services
from teamtasks.tasks import Category, StagedAttachment, TaskFilter, categorize, count_by_category
from teamtasks.theme import set_theme


logger = logging.getLogger(__name__)


@st.cache_resource(show_spinner=False)
def _services() -> Services:
    cfg = get_config()
    setup_logging(level=cfg.log_level, log_dir=cfg.log_dir)
    return get_services()


def bootstrap(screen: Screen) -> Services:
    set_theme(page_title=f"{screen.title} · Team Tasks", page_icon=screen.icon)
    navigate(st.session_state, screen)
    st.session_state._mounted = st.session_state.get("_rendered_screen") != screen.key
    st.session_state._rendered_screen = screen.key
    return _services()


def just_mounted() -> bool:
    """True on the first run after arriving at the current page."""
    return bool(st.session_state.get("_mounted", True))


def go(screen: Screen, task_id: Optional[str] = None) -> None:
    navigate(st.session_state, screen, task_id)
    st.switch_page(screen.path)


def require_user(services: Services) -> Dict[str, Any]:
    """Current user, or redirect to the login page."""
    user = services.auth.get_user(st.session_state)
    if user is None:
        go(Screen.LOGIN)
        st.stop()
    return user


# ---------------- presence ----------------

def _heartbeat(services: Services, user: Dict[str, Any]) -> PresenceHeartbeat:
    hb = st.session_state.get("presence_heartbeat")
    if not isinstance(hb, PresenceHeartbeat) or hb.client.user_id != user["id"]:
        hb = PresenceHeartbeat(
            services.client(user["id"]),
            interval_seconds=services.config.presence_interval_seconds,
        )
        st.session_state.presence_heartbeat = hb
    return hb


def start_presence(services: Services, user: Dict[str, Any]) -> None:
    """Mark the user online and keep beating while the page stays open."""
    hb = _heartbeat(services, user)
    if not hb.mounted:
        hb.mount()

    @st.fragment(run_every=services.config.presence_interval_seconds)
    def _presence_timer():
        if hb.due():
            hb.tick()

    _presence_timer()


def sign_out(services: Services) -> None:
    hb = st.session_state.get("presence_heartbeat")
    if isinstance(hb, PresenceHeartbeat):
        hb.unload()
        st.session_state.pop("presence_heartbeat", None)
    services.auth.sign_out(st.session_state)
    go(Screen.LOGIN)


# ---------------- sidebar ----------------

def sidebar(services: Services, user: Dict[str, Any]) -> None:
    with st.sidebar:
        st.markdown("### 📋 Task Manager")
        for screen in SIDEBAR_SCREENS:
            st.page_link(screen.path, label=screen.title, icon=screen.icon)
        st.markdown("---")
        st.caption(f"Signed in as **{html.escape(user.get('name') or user['email'])}**")
        appear_away = st.toggle("Appear away", key="presence_away",
                                help="Show as offline to the team while this tab stays open.")
        hb = st.session_state.get("presence_heartbeat")
        if isinstance(hb, PresenceHeartbeat) and hb.mounted and appear_away == hb.visible:
            hb.on_visibility_change(hidden=appear_away)
        if st.button("Log out", use_container_width=True):
            sign_out(services)


def page(screen: Screen) -> Tuple[Services, Dict[str, Any], BackendClient]:
    """Standard preamble for signed-in pages: (services, user, client)."""
    services = bootstrap(screen)
    user = require_user(services)
    start_presence(services, user)
    sidebar(services, user)
    return services, user, services.client(user["id"])


# ---------------- shared widgets ----------------

TILE_LABELS = {
    Category.TODAY: "Today",
    Category.NEXT: "Next",
    Category.OVERDUE: "Overdue",
}


def filter_tiles(tasks: List[Dict[str, Any]], state_key: str) -> TaskFilter:
    """Three count tiles plus "Show all"; clicking a tile toggles the filter."""
    flt = st.session_state.get(state_key)
    if not isinstance(flt, TaskFilter):
        flt = TaskFilter()
        st.session_state[state_key] = flt

    counts = count_by_category(tasks)
    cols = st.columns(4)
    for col, category in zip(cols, [Category.TODAY, Category.NEXT, Category.OVERDUE]):
        with col:
            active = " tt-tile-active" if flt.active == category else ""
            extra = " tt-tile-overdue" if category == Category.OVERDUE else ""
            st.markdown(
                f"<div class='tt-tile{active}{extra}'><div class='tt-tile-label'>{TILE_LABELS[category]}</div>"
                f"<div class='tt-tile-value'>{counts[category]}</div></div>",
                unsafe_allow_html=True,
            )
            if st.button(f"Filter {TILE_LABELS[category]}", key=f"{state_key}-{category.value}", use_container_width=True):
                flt.select(category)
                st.rerun()
    with cols[3]:
        st.markdown(
            f"<div class='tt-tile'><div class='tt-tile-label'>All</div><div class='tt-tile-value'>{len(tasks)}</div></div>",
            unsafe_allow_html=True,
        )
        if st.button("Show all", key=f"{state_key}-all", use_container_width=True, disabled=flt.active is None):
            flt.show_all()
            st.rerun()
    return flt


def task_card(task: Dict[str, Any], *, key_prefix: str, show_assignee: bool = True) -> None:
    overdue = categorize(task.get("due_date")) == Category.OVERDUE and task.get("status") != "Completed"
    priority = task.get("priority", "Medium")
    meta = [f"📅 {task.get('due_date')}", f"⏳ {task.get('status')}"]
    if show_assignee:
        meta.insert(0, f"👤 {html.escape(task.get('assigned_to_name') or 'Unassigned')}")
    st.markdown(
        f"<div class='tt-task-card{' tt-overdue' if overdue else ''}'>"
        f"<div class='tt-task-title'>{html.escape(task.get('title') or '')}"
        f"<span class='tt-priority tt-priority-{priority}'>{priority}</span></div>"
        f"<div class='tt-task-meta'>{' • '.join(meta)}</div></div>",
        unsafe_allow_html=True,
    )
    if st.button("Open", key=f"{key_prefix}-open-{task['id']}"):
        go(Screen.TASK_DETAILS, task["id"])


def staged_files(uploaded) -> List[StagedAttachment]:
    out = []
    for f in uploaded or []:
        out.append(StagedAttachment(
            file_name=f.name,
            data=f.getvalue(),
            content_type=f.type or "application/octet-stream",
        ))
    return out
