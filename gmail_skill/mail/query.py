"""Gmail search-query and label helpers."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Iterable

SYSTEM_LABELS = frozenset(
    {
        "INBOX",
        "SPAM",
        "TRASH",
        "UNREAD",
        "STARRED",
        "IMPORTANT",
        "SENT",
        "DRAFT",
        "CHAT",
        "CATEGORY_PERSONAL",
        "CATEGORY_SOCIAL",
        "CATEGORY_PROMOTIONS",
        "CATEGORY_UPDATES",
        "CATEGORY_FORUMS",
    }
)


def _operator(name: str, value: str) -> str:
    value = value.strip()
    if any(ch.isspace() for ch in value) and not (value.startswith('"') and value.endswith('"')):
        value = f'"{value}"'
    return f"{name}:{value}"


def build_query(
    query: str | None = None,
    sender: str | None = None,
    to: str | None = None,
    subject: str | None = None,
    unread: bool = False,
    starred: bool = False,
    has_attachment: bool = False,
    label: str | None = None,
    after: str | None = None,
    before: str | None = None,
    larger: str | None = None,
    smaller: str | None = None,
    filename: str | None = None,
) -> str:
    """Join a raw query and structured filters into one Gmail search string."""
    parts: list[str] = []
    if query and query.strip():
        parts.append(query.strip())
    if sender:
        parts.append(_operator("from", sender))
    if to:
        parts.append(_operator("to", to))
    if subject:
        parts.append(_operator("subject", subject))
    if unread:
        parts.append("is:unread")
    if starred:
        parts.append("is:starred")
    if has_attachment:
        parts.append("has:attachment")
    if label:
        parts.append(_operator("label", label))
    if after:
        parts.append(_operator("after", after))
    if before:
        parts.append(_operator("before", before))
    if larger:
        parts.append(_operator("larger", larger))
    if smaller:
        parts.append(_operator("smaller", smaller))
    if filename:
        parts.append(_operator("filename", filename))
    return " ".join(parts)


def format_query_date(value: date | datetime) -> str:
    return f"{value.year:04d}/{value.month:02d}/{value.day:02d}"


def days_ago(days: int, today: date | None = None) -> str:
    """Date ``days`` before today in the form Gmail's after:/before: expect."""
    if today is None:
        today = date.today()
    return format_query_date(today - timedelta(days=days))


def is_system_label(name: str) -> bool:
    return name.upper() in SYSTEM_LABELS


def resolve_label_ids(names: Iterable[str], labels: list[dict[str, Any]]) -> list[str]:
    """Translate label names to ids.

    System labels match by id case-insensitively; user labels by name.
    """
    by_name = {str(label.get("name", "")).lower(): label["id"] for label in labels if label.get("id")}
    ids: list[str] = []
    for name in names:
        if is_system_label(name):
            ids.append(name.upper())
            continue
        label_id = by_name.get(name.lower())
        if label_id is None:
            raise ValueError(f"Unknown label: {name}")
        ids.append(label_id)
    return ids
