import base64
import email
from datetime import date, datetime
from email import policy
from email.message import EmailMessage

import pytest

from gmail_skill.mail.compose import build_raw_message, reply_headers, reply_subject
from gmail_skill.mail.query import (
    build_query,
    days_ago,
    format_query_date,
    is_system_label,
    resolve_label_ids,
)


def test_build_query_empty() -> None:
    assert build_query() == ""
    assert build_query(query="   ") == ""


def test_build_query_single_filters() -> None:
    assert build_query(sender="test@example.com") == "from:test@example.com"
    assert build_query(to="recipient@example.com") == "to:recipient@example.com"
    assert build_query(unread=True) == "is:unread"
    assert build_query(starred=True) == "is:starred"
    assert build_query(has_attachment=True) == "has:attachment"
    assert build_query(after="2024/01/01", before="2024/12/31") == "after:2024/01/01 before:2024/12/31"
    assert build_query(larger="5M", smaller="10M") == "larger:5M smaller:10M"
    assert build_query(filename="pdf") == "filename:pdf"


def test_build_query_quotes_values_with_spaces() -> None:
    assert build_query(subject="meeting notes") == 'subject:"meeting notes"'
    assert build_query(label="My Label") == 'label:"My Label"'
    assert build_query(subject='"already quoted"') == 'subject:"already quoted"'


def test_build_query_combines_in_order() -> None:
    query = build_query(
        query="budget",
        sender="boss@example.com",
        subject="Q3",
        unread=True,
        has_attachment=True,
        after="2024/01/01",
    )
    assert query == "budget from:boss@example.com subject:Q3 is:unread has:attachment after:2024/01/01"


def test_format_query_date() -> None:
    assert format_query_date(date(2024, 1, 5)) == "2024/01/05"
    assert format_query_date(datetime(2023, 12, 31, 23, 59)) == "2023/12/31"


def test_days_ago() -> None:
    assert days_ago(7, today=date(2024, 1, 15)) == "2024/01/08"
    assert days_ago(0, today=date(2024, 3, 1)) == "2024/03/01"
    assert days_ago(1, today=date(2024, 3, 1)) == "2024/02/29"


def test_is_system_label() -> None:
    assert is_system_label("INBOX")
    assert is_system_label("starred")
    assert not is_system_label("Work")


def test_resolve_label_ids() -> None:
    labels = [
        {"id": "INBOX", "name": "INBOX", "type": "system"},
        {"id": "Label_1", "name": "Work", "type": "user"},
        {"id": "Label_2", "name": "Receipts/2024", "type": "user"},
    ]
    assert resolve_label_ids(["inbox", "work", "Receipts/2024"], labels) == ["INBOX", "Label_1", "Label_2"]
    assert resolve_label_ids([], labels) == []


def test_resolve_label_ids_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown label: Missing"):
        resolve_label_ids(["Missing"], [{"id": "Label_1", "name": "Work"}])


def _decode_raw(raw: str) -> EmailMessage:
    padded = raw + "=" * (-len(raw) % 4)
    return email.message_from_bytes(base64.urlsafe_b64decode(padded), policy=policy.default)


def test_build_raw_message_plain() -> None:
    raw = build_raw_message(
        to="a@example.com, b@example.com",
        subject="Héllo",
        body="Line one\nLine two ✓",
        cc="c@example.com",
        bcc="d@example.com",
    )
    assert "=" not in raw and "+" not in raw and "/" not in raw

    message = _decode_raw(raw)
    assert message["To"] == "a@example.com, b@example.com"
    assert message["Cc"] == "c@example.com"
    assert message["Bcc"] == "d@example.com"
    assert message["Subject"] == "Héllo"
    assert message["Message-ID"]
    assert message.get_content_type() == "text/plain"
    assert message.get_content().rstrip("\n") == "Line one\nLine two ✓"


def test_build_raw_message_html_and_threading() -> None:
    raw = build_raw_message(
        to="a@example.com",
        subject="Re: Hi",
        body="<p>Hi</p>",
        html=True,
        in_reply_to="<orig@mail.example.com>",
        references="<root@mail.example.com> <orig@mail.example.com>",
    )
    message = _decode_raw(raw)
    assert message.get_content_type() == "text/html"
    assert message["In-Reply-To"] == "<orig@mail.example.com>"
    assert message["References"] == "<root@mail.example.com> <orig@mail.example.com>"
    assert "Cc" not in message


def test_reply_subject() -> None:
    assert reply_subject("Hello") == "Re: Hello"
    assert reply_subject("RE: Hello") == "RE: Hello"
    assert reply_subject(None) == "Re:"


def test_reply_headers() -> None:
    original = {
        "id": "m1",
        "threadId": "t1",
        "payload": {
            "headers": [
                {"name": "From", "value": "Alice <alice@example.com>"},
                {"name": "Subject", "value": "Plans"},
                {"name": "Message-ID", "value": "<m1@mail.example.com>"},
                {"name": "References", "value": "<m0@mail.example.com>"},
            ]
        },
    }
    assert reply_headers(original) == {
        "to": "Alice <alice@example.com>",
        "subject": "Re: Plans",
        "in_reply_to": "<m1@mail.example.com>",
        "references": "<m0@mail.example.com> <m1@mail.example.com>",
        "thread_id": "t1",
    }


def test_reply_headers_prefers_reply_to() -> None:
    original = {
        "threadId": "t1",
        "payload": {
            "headers": [
                {"name": "From", "value": "list@example.com"},
                {"name": "Reply-To", "value": "owner@example.com"},
            ]
        },
    }
    reply = reply_headers(original)
    assert reply["to"] == "owner@example.com"
    assert reply["in_reply_to"] is None
    assert reply["references"] is None
