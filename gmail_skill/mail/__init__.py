"""Gmail API access and payload decoding."""

from gmail_skill.mail.client import GmailAPIError, GmailClient, describe_api_error
from gmail_skill.mail.codec import (
    Address,
    Attachment,
    extract_body,
    format_relative_date,
    format_size,
    get_header,
    list_attachments,
    parse_address,
    sanitize_html,
    truncate,
)

__all__ = [
    "Address",
    "Attachment",
    "GmailAPIError",
    "GmailClient",
    "describe_api_error",
    "extract_body",
    "format_relative_date",
    "format_size",
    "get_header",
    "list_attachments",
    "parse_address",
    "sanitize_html",
    "truncate",
]
