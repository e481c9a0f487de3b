"""Outgoing message construction."""

from __future__ import annotations

from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Any

from gmail_skill.mail.codec import encode_base64url, get_header


def build_raw_message(
    to: str,
    subject: str,
    body: str,
    cc: str | None = None,
    bcc: str | None = None,
    html: bool = False,
    in_reply_to: str | None = None,
    references: str | None = None,
) -> str:
    """RFC 2822 message, base64url encoded for the ``raw`` field."""
    message = EmailMessage()
    message["To"] = to
    if cc:
        message["Cc"] = cc
    if bcc:
        message["Bcc"] = bcc
    message["Subject"] = subject
    message["Date"] = formatdate(localtime=True)
    message["Message-ID"] = make_msgid()
    if in_reply_to:
        message["In-Reply-To"] = in_reply_to
    if references:
        message["References"] = references

    if html:
        message.set_content(body, subtype="html", charset="utf-8")
    else:
        message.set_content(body, charset="utf-8")
    return encode_base64url(message.as_bytes())


def reply_subject(subject: str | None) -> str:
    subject = (subject or "").strip()
    if subject.lower().startswith("re:"):
        return subject
    return f"Re: {subject}" if subject else "Re:"


def reply_headers(original: dict[str, Any]) -> dict[str, str | None]:
    """Threading fields for a reply to ``original`` (a full or metadata message)."""
    headers = (original.get("payload") or {}).get("headers") or []
    message_id = get_header(headers, "Message-ID")
    prior_refs = get_header(headers, "References")
    references = " ".join(ref for ref in (prior_refs, message_id) if ref) or None
    return {
        "to": get_header(headers, "Reply-To") or get_header(headers, "From"),
        "subject": reply_subject(get_header(headers, "Subject")),
        "in_reply_to": message_id,
        "references": references,
        "thread_id": original.get("threadId"),
    }
