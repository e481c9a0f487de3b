"""Text and JSON rendering of Gmail objects."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

from gmail_skill.mail.codec import (
    extract_body,
    format_relative_date,
    format_size,
    get_header,
    list_attachments,
    parse_address,
    parse_address_list,
    truncate,
)


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def summarize_message(message: dict[str, Any]) -> dict[str, Any]:
    headers = (message.get("payload") or {}).get("headers") or []
    labels = message.get("labelIds") or []
    return {
        "id": message.get("id"),
        "threadId": message.get("threadId"),
        "from": asdict(parse_address(get_header(headers, "From"))),
        "to": get_header(headers, "To"),
        "subject": get_header(headers, "Subject") or "(No Subject)",
        "date": get_header(headers, "Date"),
        "snippet": message.get("snippet") or "",
        "labels": labels,
        "unread": "UNREAD" in labels,
    }


def detail_message(message: dict[str, Any]) -> dict[str, Any]:
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []
    detail = summarize_message(message)
    detail.update(
        {
            "to": [asdict(a) for a in parse_address_list(get_header(headers, "To"))],
            "cc": [asdict(a) for a in parse_address_list(get_header(headers, "Cc"))],
            "messageId": get_header(headers, "Message-ID"),
            "body": extract_body(payload),
            "attachments": [asdict(a) for a in list_attachments(payload)],
        }
    )
    return detail


def _sender_label(sender: dict[str, Any]) -> str:
    return sender.get("name") or sender.get("email") or "Unknown"


def _address_line(addresses: list[dict[str, Any]]) -> str:
    rendered = []
    for address in addresses:
        if address.get("name") and address.get("email"):
            rendered.append(f"{address['name']} <{address['email']}>")
        else:
            rendered.append(address.get("email") or address.get("name") or "")
    return ", ".join(rendered)


def format_summary_text(summary: dict[str, Any], index: int | None = None) -> str:
    marker = "●" if summary["unread"] else " "
    prefix = f"{index}. " if index is not None else ""
    lines = [
        f"{marker} {prefix}{truncate(summary['subject'], 70)}",
        f"    From: {truncate(_sender_label(summary['from']), 40)} | {format_relative_date(summary['date'])}",
        f"    ID: {summary['id']}",
    ]
    if summary["snippet"]:
        lines.append(f"    {truncate(summary['snippet'], 100)}")
    return "\n".join(lines)


def format_list_text(
    summaries: list[dict[str, Any]],
    result_size_estimate: int | None = None,
    next_page_token: str | None = None,
) -> str:
    if not summaries:
        return "No messages found."
    total = result_size_estimate if result_size_estimate is not None else len(summaries)
    blocks = [f"Showing {len(summaries)} of ~{total} messages\n"]
    blocks.extend(format_summary_text(s, i) for i, s in enumerate(summaries, start=1))
    if next_page_token:
        blocks.append(f"\nMore results: --page-token={next_page_token}")
    return "\n\n".join(blocks)


def format_detail_text(detail: dict[str, Any]) -> str:
    sender = detail["from"]
    from_line = _address_line([sender]) if sender.get("email") else "Unknown"
    lines = [
        f"Subject: {detail['subject']}",
        f"From: {from_line}",
        f"To: {_address_line(detail['to'])}",
    ]
    if detail["cc"]:
        lines.append(f"Cc: {_address_line(detail['cc'])}")
    lines.extend(
        [
            f"Date: {detail['date'] or 'Unknown'} ({format_relative_date(detail['date'])})",
            f"ID: {detail['id']} | Thread: {detail['threadId']}",
            f"Labels: {', '.join(detail['labels'])}",
        ]
    )
    if detail["attachments"]:
        lines.append("Attachments:")
        for attachment in detail["attachments"]:
            lines.append(f"  - {attachment['filename']} ({format_size(attachment['size'])})")
    lines.extend(["", detail["body"] or "(no text body)"])
    return "\n".join(lines)


def format_thread_text(thread_id: str, details: list[dict[str, Any]]) -> str:
    header = f"Thread {thread_id} ({len(details)} message{'s' if len(details) != 1 else ''})"
    separator = "\n\n" + "-" * 60 + "\n\n"
    return header + "\n\n" + separator.join(format_detail_text(d) for d in details)


def format_labels_rows(labels: list[dict[str, Any]]) -> list[tuple[str, str, str]]:
    """Rows of (name, id, type), system labels first, each group sorted by name."""
    ordered = sorted(labels, key=lambda label: (label.get("type") != "system", str(label.get("name", "")).lower()))
    return [(label.get("name", ""), label.get("id", ""), label.get("type", "")) for label in ordered]
