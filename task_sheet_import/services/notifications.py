from __future__ import annotations

import html
import logging
from collections.abc import Iterable

from ..models.config_models import NotificationSettings
from ..models.notification import NotificationEmail, NotificationGroup
from ..models.task import ImportedTask

"""Notification consolidator.

One notification per recipient regardless of how many tasks they received:
open tasks (status outside completed/cancelled) with a resolved assignee
email are grouped by email, compared case-insensitively, keeping the casing
and display name seen first.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "consolidate",
    "compose_email",
    "render_email_html",
]

DESCRIPTION_PREVIEW_CHARS = 100


def consolidate(tasks: Iterable[ImportedTask]) -> list[NotificationGroup]:
    """Group notifiable tasks by assignee email, in first-seen order."""
    order: list[str] = []
    emails: dict[str, str] = {}
    names: dict[str, str] = {}
    grouped: dict[str, list[ImportedTask]] = {}
    for task in tasks:
        if task.is_closed:
            continue
        email = (task.assigned_email or "").strip()
        if not email:
            continue
        key = email.lower()
        if key not in grouped:
            order.append(key)
            emails[key] = email
            names[key] = task.assigned_display_name or email
            grouped[key] = []
        grouped[key].append(task)

    groups = [
        NotificationGroup(recipient_email=emails[k], recipient_display_name=names[k], tasks=tuple(grouped[k]))
        for k in order
    ]
    logger.debug(f"consolidated {sum(g.task_count for g in groups)} task(s) into {len(groups)} notification(s)")
    return groups


def _task_row(task: ImportedTask) -> str:
    parts = [f'<div style="font-weight: 600; color: #1F2937;">{html.escape(task.title)}</div>']
    if task.description:
        text = task.description[:DESCRIPTION_PREVIEW_CHARS]
        if len(task.description) > DESCRIPTION_PREVIEW_CHARS:
            text += "..."
        parts.append(f'<div style="font-size: 13px; color: #6B7280;">{html.escape(text)}</div>')
    meta = [f"Priorité: {task.priority.value}"]
    if task.due_date:
        meta.append(f"Échéance: {task.due_date.strftime('%d/%m/%Y')}")
    parts.append(f'<div style="font-size: 12px; color: #9CA3AF;">{" • ".join(meta)}</div>')
    return (
        '<tr><td style="padding: 12px 16px; border-bottom: 1px solid #E5E7EB;">'
        + "".join(parts)
        + "</td></tr>"
    )


def render_email_html(group: NotificationGroup, settings: NotificationSettings) -> str:
    """HTML body listing every task of ``group``."""
    count = group.task_count
    count_label = (
        f"{count} tâches vous ont été assignées" if count > 1 else f"{count} tâche vous a été assignée"
    )
    message = html.escape(settings.rendered_message()).replace("\n", "<br>")
    rows = "".join(_task_row(t) for t in group.tasks)
    link = html.escape(settings.project_url or "#", quote=True)
    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8"></head>'
        '<body style="margin: 0; font-family: \'Segoe UI\', Tahoma, sans-serif; background-color: #F3F4F6;">'
        '<div style="max-width: 600px; margin: 0 auto; padding: 20px;">'
        f"<h1>Nouvelles tâches assignées</h1>"
        f"<p>Projet: {html.escape(settings.project_name)}</p>"
        f"<p>Bonjour <strong>{html.escape(group.recipient_display_name)}</strong>,</p>"
        f"<p>{message}</p>"
        f"<p><span>{count_label}</span></p>"
        '<table style="width: 100%; border-collapse: collapse;">'
        "<thead><tr><th>Vos tâches</th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
        f'<p><a href="{link}">Voir mes tâches →</a></p>'
        "</div></body></html>"
    )


def compose_email(group: NotificationGroup, settings: NotificationSettings) -> NotificationEmail:
    """Build the single consolidated email for ``group``."""
    return NotificationEmail(
        to=group.recipient_email,
        subject=settings.rendered_subject(),
        html=render_email_html(group, settings),
    )
