# parafort/services/messages.py
from __future__ import annotations

from datetime import date
from html import escape as html_escape
from typing import Dict, Optional

# ---------------------------------
# Message templates (subject/body/html) – EN only
# ---------------------------------

_URGENCY_PREFIX = {
    "urgent": "[URGENT] ",
    "high": "[Action needed] ",
    "medium": "[Reminder] ",
    "low": "",
    "info": "",
}


def fmt_due(d: date) -> str:
    return f"{d:%B} {d.day}, {d.year}"


def due_phrase(days_until_due: int) -> str:
    if days_until_due < 0:
        n = -days_until_due
        return f"overdue by {n} day{'s' if n != 1 else ''}"
    if days_until_due == 0:
        return "today"
    if days_until_due == 1:
        return "tomorrow"
    return f"in {days_until_due} days"


def reminder_title(event_title: str, days_until_due: int) -> str:
    """Short title stored on the scheduled reminder (dashboard listing)."""
    if days_until_due < 0:
        return f"Overdue: {event_title}"
    if days_until_due == 0:
        return f"DUE TODAY: {event_title}"
    if days_until_due == 1:
        return f"Due Tomorrow: {event_title}"
    if days_until_due <= 7:
        return f"Due in {days_until_due} days: {event_title}"
    return f"Upcoming: {event_title} ({days_until_due} days)"


def reminder_message(
    *,
    event_title: str,
    event_description: Optional[str],
    due_date: date,
    days_until_due: int,
    priority: str,
    category: str,
    business_name: Optional[str],
) -> str:
    urgency_text = "URGENT: " if days_until_due <= 7 else ""
    return (
        f"{urgency_text}{event_title} for {business_name or 'your business'} is due on "
        f"{fmt_due(due_date)} ({days_until_due} days from now).\n\n"
        f"{event_description or ''}\n\n"
        f"Priority: {priority.upper()}\n"
        f"Category: {category}\n\n"
        "Please ensure you complete this requirement on time to maintain your business compliance."
    )


def render_reminder(
    *,
    urgency: str,
    event_title: str,
    event_description: Optional[str],
    due_date: date,
    days_until_due: int,
    priority: str,
    business_name: Optional[str],
    entity_type: Optional[str],
    dashboard_url: str,
) -> Dict[str, str]:
    """Subject/body sent through the external channel; tone follows the urgency tier."""
    when = due_phrase(days_until_due)
    subject = f"{_URGENCY_PREFIX.get(urgency, '')}Compliance Reminder: {event_title}"
    lines = [
        f"{event_title} is due {when}.",
        "",
        f"Business: {business_name or '-'} ({entity_type or '-'})",
        f"Due Date: {fmt_due(due_date)}",
        f"Priority: {(priority or '-').upper()}",
        f"Description: {event_description or '-'}",
        "",
    ]
    if urgency == "urgent":
        lines.append("Immediate action required! This compliance deadline is due very soon.")
        lines.append("")
    lines.append(f"View your compliance dashboard: {dashboard_url}")
    lines.append("Stay compliant and avoid penalties.")
    html = _reminder_html(
        urgency=urgency,
        event_title=event_title,
        event_description=event_description,
        due_date=due_date,
        when=when,
        priority=priority,
        business_name=business_name,
        entity_type=entity_type,
        dashboard_url=dashboard_url,
    )
    return {"subject": subject, "body": "\n".join(lines), "html": html}


_URGENCY_COLOR = {"urgent": "#dc2626", "high": "#ea580c", "medium": "#2563eb"}


def _reminder_html(
    *,
    urgency: str,
    event_title: str,
    event_description: Optional[str],
    due_date: date,
    when: str,
    priority: str,
    business_name: Optional[str],
    entity_type: Optional[str],
    dashboard_url: str,
) -> str:
    color = _URGENCY_COLOR.get(urgency, "#16a34a")
    e = html_escape
    alert = ""
    if urgency == "urgent":
        alert = (
            '<p style="background:#fef2f2;border-left:4px solid #dc2626;padding:12px;">'
            "<strong>Immediate action required!</strong> This compliance deadline is due very soon.</p>"
        )
    return (
        '<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;">'
        f'<h2 style="color:{color};">{e(event_title)} is due {e(when)}</h2>'
        '<table style="width:100%;border-collapse:collapse;">'
        f"<tr><td><strong>Business</strong></td><td>{e(business_name or '-')} ({e(entity_type or '-')})</td></tr>"
        f"<tr><td><strong>Due Date</strong></td><td>{e(fmt_due(due_date))}</td></tr>"
        f"<tr><td><strong>Priority</strong></td><td>{e((priority or '-').upper())}</td></tr>"
        f"<tr><td><strong>Description</strong></td><td>{e(event_description or '-')}</td></tr>"
        "</table>"
        f"{alert}"
        f'<p><a href="{e(dashboard_url)}" style="background:{color};color:#fff;padding:10px 20px;'
        'text-decoration:none;border-radius:4px;">View Compliance Dashboard</a></p>'
        '<p style="color:#6b7280;font-size:12px;">Stay compliant and avoid penalties.</p>'
        "</div>"
    )


def in_app_text(*, event_title: str, event_description: Optional[str], business_name: Optional[str], days_until_due: int) -> Dict[str, str]:
    return {
        "title": f"Compliance Due: {event_title}",
        "message": f"{business_name or 'Your business'}: {event_description or event_title}. Due {due_phrase(days_until_due)}.",
    }
