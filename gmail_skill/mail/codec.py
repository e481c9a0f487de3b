"""Helpers that turn Gmail API payloads into readable text.

Every function here is pure: it never mutates the payload it is given and
never raises on malformed input. A message that cannot be decoded degrades
to an empty string or ``None`` fields so one odd message does not break a
listing of many.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import getaddresses, parsedate_to_datetime
from typing import Any, Iterator

MAX_PART_DEPTH = 32

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_SIZE_UNITS = ("B", "KB", "MB", "GB")

_DANGEROUS_ELEMENTS = [
    re.compile(rf"<{tag}\b[^>]*>[\s\S]*?</{tag}\s*>", re.IGNORECASE)
    for tag in ("script", "style", "iframe", "object")
]
_EMBED_RE = re.compile(r"<embed\b[^>]*>", re.IGNORECASE)
_HANDLER_DQ_RE = re.compile(r"\bon\w+\s*=\s*\"[^\"]*\"", re.IGNORECASE)
_HANDLER_SQ_RE = re.compile(r"\bon\w+\s*=\s*'[^']*'", re.IGNORECASE)
_JS_SCHEME_RE = re.compile(r"\bjavascript:", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_HEX_ENTITY_RE = re.compile(r"&#x([0-9a-fA-F]+);")
_DEC_ENTITY_RE = re.compile(r"&#(\d+);")
_WHITESPACE_RE = re.compile(r"\s+")
_ADDRESS_RE = re.compile(r'^(?:"?(?P<name>[^"<]*?)"?\s*)?<(?P<email>[^<>]+)>$')

# &amp; goes last so "&amp;lt;" decodes to "&lt;" and not "<".
_NAMED_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&copy;", "(c)"),
    ("&amp;", "&"),
)


@dataclass(frozen=True)
class Address:
    name: str | None
    email: str | None


@dataclass(frozen=True)
class Attachment:
    attachment_id: str
    filename: str
    mime_type: str
    size: int


def get_header(headers: list[dict[str, Any]] | None, name: str) -> str | None:
    """Case-insensitive lookup of the first header called ``name``."""
    if not headers:
        return None
    wanted = name.lower()
    for header in headers:
        if str(header.get("name", "")).lower() == wanted:
            return header.get("value") or None
    return None


def parse_address(raw: str | None) -> Address:
    """Split ``"Display Name" <addr>`` into name and email."""
    if not raw or not raw.strip():
        return Address(name=None, email=None)
    value = raw.strip()
    match = _ADDRESS_RE.match(value)
    if not match:
        return Address(name=None, email=value)
    name = (match.group("name") or "").strip()
    email = match.group("email").strip()
    return Address(name=name or None, email=email or None)


def parse_address_list(raw: str | None) -> list[Address]:
    """Parse a To/Cc style header holding several addresses."""
    if not raw or not raw.strip():
        return []
    addresses = []
    for name, email in getaddresses([raw]):
        if not name and not email:
            continue
        addresses.append(Address(name=name or None, email=email or None))
    return addresses


def decode_base64url(data: str | None) -> str:
    if not data:
        return ""
    value = data.replace("-", "+").replace("_", "/")
    value += "=" * (-len(value) % 4)
    try:
        raw = base64.b64decode(value)
    except (binascii.Error, ValueError):
        return ""
    return raw.decode("utf-8", errors="replace")


def encode_base64url(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _decode_entity(match: re.Match[str], base: int) -> str:
    try:
        codepoint = int(match.group(1), base)
    except ValueError:
        return ""
    if codepoint == 0 or codepoint > 0x10FFFF:
        return ""
    # Lone surrogates cannot be encoded on output.
    if 0xD800 <= codepoint <= 0xDFFF:
        return "\ufffd"
    return chr(codepoint)


def sanitize_html(html: str | None) -> str:
    """Flatten an HTML body to display text.

    Whole dangerous elements go first, then handler attributes and
    ``javascript:`` schemes, and only then the remaining tags. Tag stripping
    removes markup but not attribute values, so the earlier passes cannot be
    folded into it.
    """
    if not html:
        return ""
    text = html
    for pattern in _DANGEROUS_ELEMENTS:
        text = pattern.sub("", text)
    text = _EMBED_RE.sub("", text)
    text = _HANDLER_DQ_RE.sub("", text)
    text = _HANDLER_SQ_RE.sub("", text)
    text = _JS_SCHEME_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)

    for entity, replacement in _NAMED_ENTITIES[:-1]:
        text = text.replace(entity, replacement)
    text = _HEX_ENTITY_RE.sub(lambda m: _decode_entity(m, 16), text)
    text = _DEC_ENTITY_RE.sub(lambda m: _decode_entity(m, 10), text)
    text = text.replace(*_NAMED_ENTITIES[-1])

    return _WHITESPACE_RE.sub(" ", text).strip()


def _part_data(part: dict[str, Any]) -> str | None:
    body = part.get("body") or {}
    return body.get("data") or None


def extract_body(payload: dict[str, Any] | None, _depth: int = 0) -> str:
    """Best plain-text body of a message payload.

    Order: the node's own body, the first text/plain part, the first
    text/html part (sanitized), then the first nested multipart that yields
    anything.
    """
    if not payload or _depth > MAX_PART_DEPTH:
        return ""

    data = _part_data(payload)
    if data:
        text = decode_base64url(data)
        if payload.get("mimeType") == "text/html":
            return sanitize_html(text)
        return text

    parts = payload.get("parts") or []
    for part in parts:
        if part.get("mimeType") == "text/plain" and _part_data(part):
            return decode_base64url(_part_data(part))
    for part in parts:
        if part.get("mimeType") == "text/html" and _part_data(part):
            return sanitize_html(decode_base64url(_part_data(part)))
    for part in parts:
        if part.get("parts"):
            nested = extract_body(part, _depth + 1)
            if nested:
                return nested
    return ""


def _walk_parts(payload: dict[str, Any], depth: int = 0) -> Iterator[dict[str, Any]]:
    if depth > MAX_PART_DEPTH:
        return
    for part in payload.get("parts") or []:
        yield part
        yield from _walk_parts(part, depth + 1)


def list_attachments(payload: dict[str, Any] | None) -> list[Attachment]:
    if not payload:
        return []
    attachments = []
    for part in _walk_parts(payload):
        body = part.get("body") or {}
        filename = part.get("filename")
        attachment_id = body.get("attachmentId")
        if filename and attachment_id:
            attachments.append(
                Attachment(
                    attachment_id=attachment_id,
                    filename=filename,
                    mime_type=part.get("mimeType") or "application/octet-stream",
                    size=int(body.get("size") or 0),
                )
            )
    return attachments


def truncate(text: str | None, max_len: int = 60) -> str:
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    if max_len < 3:
        return text[: max(max_len, 0)]
    return text[: max_len - 3] + "..."


def format_size(size: int | float | None) -> str:
    """Human-readable byte count in 1024 steps."""
    if not size:
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    decimals = 1 if unit else 0
    return f"{value:.{decimals}f} {_SIZE_UNITS[unit]}"


def parse_date(value: str | datetime | None) -> datetime | None:
    """Parse ISO-8601, RFC 2822 or epoch-millisecond dates.

    Naive values are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.isdigit():
            try:
                return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = parsedate_to_datetime(text)
            except (TypeError, ValueError, IndexError):
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_relative_date(value: str | datetime | None, now: datetime | None = None) -> str:
    date = parse_date(value)
    if date is None:
        return "Unknown date"
    if now is None:
        now = datetime.now().astimezone()
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff = (now - date).total_seconds()
    minutes = int(diff // 60)
    hours = int(diff // 3600)
    days = int(diff // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} min ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"

    local = date.astimezone(now.tzinfo)
    label = f"{_MONTHS[local.month - 1]} {local.day}"
    if local.year != now.year:
        label += f", {local.year}"
    return label
