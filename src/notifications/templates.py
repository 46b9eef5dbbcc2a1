# src/notifications/templates.py
"""Message text for each outbox event type"""

from dataclasses import dataclass
from html import escape
from typing import Dict, Any, Optional

from src.config import settings


class EventType:
    NEW_TASK_CREATED = "NEW_TASK_CREATED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_REASSIGNED = "TASK_REASSIGNED"
    TASK_UNASSIGNED = "TASK_UNASSIGNED"


@dataclass
class RenderedMessage:
    title: str
    content: str
    email_subject: str
    email_html: str
    whatsapp: str


def task_url(task_id: Optional[str], admin: bool = False) -> str:
    prefix = "admin/tasks" if admin else "freelancer/tasks"
    return f"{settings.APP_URL.rstrip('/')}/{prefix}/{task_id or ''}"


def _email_html(greeting: str, body: str, url: str, cta: str) -> str:
    return (
        f"<p>{escape(greeting)}</p>"
        f"<p>{escape(body)}</p>"
        f'<p><a href="{escape(url)}">{escape(cta)}</a></p>'
        "<p>DesignDesk</p>"
    )


def render(event_type: str, payload: Dict[str, Any], recipient_name: str = "there") -> RenderedMessage:
    """Render an outbox event. Raises ValueError for unknown event types."""
    title = payload.get("task_title", "a task")
    task_id = payload.get("task_id")
    greeting = f"Hi {recipient_name},"

    if event_type == EventType.TASK_ASSIGNED:
        url = task_url(task_id)
        body = f"You have been assigned: {title}"
        return RenderedMessage(
            title="New Task Assigned",
            content=body,
            email_subject=f"New task assigned: {title}",
            email_html=_email_html(greeting, body, url, "View task"),
            whatsapp=f"*New Task Assigned*\n\nYou have been assigned: {title}\n\nView details: {url}",
        )

    if event_type == EventType.TASK_REASSIGNED:
        url = task_url(task_id)
        body = f"The task \"{title}\" has been reassigned to you by an administrator."
        return RenderedMessage(
            title="Task Reassigned To You",
            content=body,
            email_subject=f"Task reassigned to you: {title}",
            email_html=_email_html(greeting, body, url, "View task"),
            whatsapp=f"*Task Reassigned*\n\n{title} is now yours.\n\nView details: {url}",
        )

    if event_type == EventType.TASK_UNASSIGNED:
        url = task_url(task_id)
        body = f"The task \"{title}\" has been reassigned to another artist."
        return RenderedMessage(
            title="Task Reassigned",
            content=body,
            email_subject=f"Task reassigned: {title}",
            email_html=_email_html(greeting, body, url, "View your tasks"),
            whatsapp=f"*Task Reassigned*\n\n{title} has been moved to another artist.",
        )

    if event_type == EventType.NEW_TASK_CREATED:
        url = task_url(task_id, admin=True)
        assignee = payload.get("assigned_to") or "unassigned"
        body = (
            f"{payload.get('client_name', 'A client')} created \"{title}\" "
            f"({payload.get('credits', 0)} credits, {payload.get('complexity', 'unknown')} / "
            f"{payload.get('urgency', 'unknown')}). Assigned to: {assignee}."
        )
        return RenderedMessage(
            title="New Task Created",
            content=body,
            email_subject=f"[Admin] New task: {title}",
            email_html=_email_html("Hi admin,", body, url, "Open in admin"),
            whatsapp=f"*New Task*\n\n{title}\nCredits: {payload.get('credits', 0)}\nAssigned: {assignee}\n\n{url}",
        )

    raise ValueError(f"Unknown notification event type: {event_type}")
