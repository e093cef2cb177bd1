"""Screens and the navigation context passed between them."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, MutableMapping, Optional


class Screen(enum.Enum):
    HOME = ("home", "app.py", "Home", "🏠")
    LOGIN = ("login", "pages/0_Login.py", "Login", "🔑")
    SIGNUP = ("signup", "pages/0_Sign_Up.py", "Sign Up", "📝")
    DASHBOARD = ("dashboard", "pages/1_Dashboard.py", "Dashboard", "📋")
    MY_TASKS = ("myTasks", "pages/2_My_Tasks.py", "My Tasks", "✅")
    EMPLOYEES = ("employees", "pages/3_Employees.py", "Employees", "👥")
    CALENDAR = ("calendar", "pages/4_Calendar.py", "Calendar", "📅")
    SETTINGS = ("settings", "pages/5_Settings.py", "Settings", "⚙️")
    TASK_DETAILS = ("taskDetails", "pages/6_Task_Details.py", "Task Details", "🗂️")

    def __init__(self, key: str, path: str, title: str, icon: str):
        self.key = key
        self.path = path
        self.title = title
        self.icon = icon

    @property
    def requires_auth(self) -> bool:
        return self not in (Screen.HOME, Screen.LOGIN, Screen.SIGNUP)

    @classmethod
    def from_key(cls, key: str) -> "Screen":
        for screen in cls:
            if screen.key == key:
                return screen
        raise ValueError(f"Unknown screen: {key}")


# Sidebar order for signed-in users.
SIDEBAR_SCREENS = [Screen.DASHBOARD, Screen.MY_TASKS, Screen.EMPLOYEES, Screen.CALENDAR, Screen.SETTINGS]

_STATE_KEY = "nav_context"


@dataclass
class NavigationContext:
    screen: Screen = Screen.HOME
    task_id: Optional[str] = None


def get_context(session_state: MutableMapping[str, Any]) -> NavigationContext:
    ctx = session_state.get(_STATE_KEY)
    if not isinstance(ctx, NavigationContext):
        ctx = NavigationContext()
        session_state[_STATE_KEY] = ctx
    return ctx


def navigate(session_state: MutableMapping[str, Any], screen: Screen, task_id: Optional[str] = None) -> NavigationContext:
    """Record the target screen; a missing task id keeps the previous one."""
    ctx = get_context(session_state)
    ctx.screen = screen
    if task_id:
        ctx.task_id = task_id
    return ctx
