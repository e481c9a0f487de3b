"""CLI commands for gmail-skill."""

import asyncio
import logging
import sys
from enum import Enum
from typing import Any, Awaitable, Callable, NoReturn, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gmail_skill import __logo__, __version__
from gmail_skill.auth import GmailAuth, GmailAuthError
from gmail_skill.cli.formatter import (
    detail_message,
    format_detail_text,
    format_labels_rows,
    format_list_text,
    format_thread_text,
    summarize_message,
    to_json,
)
from gmail_skill.mail.client import GmailAPIError, GmailClient, describe_api_error
from gmail_skill.mail.compose import build_raw_message, reply_headers
from gmail_skill.mail.query import build_query, days_ago, resolve_label_ids

app = typer.Typer(
    name="gmail-skill",
    help=f"{__logo__} gmail-skill - Read, search, send and organize Gmail",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")


class OutputFormat(str, Enum):
    text = "text"
    json = "json"


FORMAT_OPTION = typer.Option(OutputFormat.text, "--format", "-f", case_sensitive=False, help="Output format")


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} gmail-skill v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """gmail-skill - Gmail access for coding assistants."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Helpers
# ============================================================================


def _fail(message: str, hint: str | None = None) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    if hint:
        err_console.print(hint, markup=False, highlight=False)
    raise typer.Exit(1)


def _get_auth() -> GmailAuth:
    from gmail_skill.config.loader import load_auth_config

    try:
        return GmailAuth(load_auth_config())
    except ValueError as exc:
        _fail(str(exc))


def _run(operation: Callable[[GmailClient], Awaitable[T]]) -> T:
    """Authorize, run ``operation`` against Gmail, and map failures to exit 1."""
    try:
        client = _get_auth().authorized_client()

        async def _go() -> T:
            async with client as gmail:
                return await operation(gmail)

        return asyncio.run(_go())
    except GmailAuthError as exc:
        _fail(str(exc), exc.hint)
    except GmailAPIError as exc:
        _fail(describe_api_error(exc))


def _emit(output_format: OutputFormat, data: Any, text: str) -> None:
    if output_format == OutputFormat.json:
        typer.echo(to_json(data))
    else:
        typer.echo(text)


async def _fetch_summaries(
    gmail: GmailClient,
    query: str | None,
    max_results: int,
    page_token: str | None = None,
    label_names: list[str] | None = None,
) -> dict[str, Any]:
    label_ids = None
    if label_names:
        try:
            label_ids = resolve_label_ids(label_names, await gmail.list_labels())
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--label") from exc

    listing = await gmail.list_messages(
        query=query,
        max_results=max_results,
        page_token=page_token,
        label_ids=label_ids,
    )
    refs = listing.get("messages") or []
    messages = await gmail.get_messages([ref["id"] for ref in refs])
    return {
        "query": query or "",
        "resultSizeEstimate": listing.get("resultSizeEstimate", len(refs)),
        "nextPageToken": listing.get("nextPageToken"),
        "messages": [summarize_message(m) for m in messages],
    }


def _emit_listing(output_format: OutputFormat, result: dict[str, Any]) -> None:
    _emit(
        output_format,
        result,
        format_list_text(result["messages"], result["resultSizeEstimate"], result["nextPageToken"]),
    )


# ============================================================================
# Auth
# ============================================================================


@app.command()
def auth(
    logout: bool = typer.Option(False, "--logout", help="Delete the stored token"),
    no_browser: bool = typer.Option(False, "--no-browser", help="Only print the authorization URL"),
):
    """Authorize gmail-skill with your Google account."""
    gmail_auth = _get_auth()

    if logout:
        if gmail_auth.logout():
            console.print(f"[green]✓[/green] Removed {gmail_auth.config.token_path}")
        else:
            console.print("No stored token.")
        return

    def _on_auth(url: str) -> None:
        console.print("Open this URL in your browser if it did not open automatically:")
        console.print(url, markup=False, highlight=False, soft_wrap=True)

    def _on_progress(message: str) -> None:
        console.print(f"[dim]{message}[/dim]")

    try:
        token = gmail_auth.login_interactive(
            on_auth=_on_auth,
            on_progress=_on_progress,
            open_browser=not no_browser,
        )
    except GmailAuthError as exc:
        _fail(str(exc), exc.hint)

    console.print(f"[green]✓[/green] Authorized ({len(token.scopes)} scopes)")
    console.print(f"Token saved to {gmail_auth.config.token_path}")


@app.command()
def status(output_format: OutputFormat = FORMAT_OPTION):
    """Show credentials and token status."""
    info = _get_auth().status()
    if output_format == OutputFormat.json:
        typer.echo(to_json(info))
        return

    def _mark(ok: bool) -> str:
        return "[green]✓[/green]" if ok else "[red]✗[/red]"

    console.print(f"{__logo__} gmail-skill Status\n")
    console.print(f"Credentials: {info['credentials_path']} {_mark(info['credentials_present'])}")
    console.print(f"Token: {info['token_path']} {_mark(info['authenticated'])}")
    if info["authenticated"]:
        expires_in = info.get("expires_in")
        if expires_in is None:
            expiry = "[dim]no expiry[/dim]"
        elif info["expired"]:
            expiry = "[yellow]refresh due[/yellow]"
        else:
            expiry = f"in {expires_in // 60} min"
        console.print(f"Access token: {expiry}")
        console.print(f"Refresh token: {_mark(info['has_refresh_token'])}")
        table = Table(title="Granted scopes")
        table.add_column("Scope", style="cyan")
        for scope in info["scopes"]:
            table.add_row(scope)
        console.print(table)


# ============================================================================
# Read
# ============================================================================


@app.command("list")
def list_messages(
    query_arg: str = typer.Argument(None, metavar="[QUERY]", help="Gmail search query"),
    query: str = typer.Option(None, "--query", "-q", help="Gmail search query"),
    max_results: int = typer.Option(10, "--max-results", "-n", min=1, max=500, help="Maximum messages"),
    label: list[str] = typer.Option(None, "--label", "-l", help="Only messages with this label (repeatable)"),
    page_token: str = typer.Option(None, "--page-token", help="Continue a previous listing"),
    output_format: OutputFormat = FORMAT_OPTION,
):
    """List recent messages."""
    result = _run(
        lambda gmail: _fetch_summaries(
            gmail,
            query or query_arg,
            max_results,
            page_token=page_token,
            label_names=label or None,
        )
    )
    _emit_listing(output_format, result)


@app.command()
def search(
    query_arg: str = typer.Argument(None, metavar="[QUERY]", help="Raw Gmail search query"),
    sender: str = typer.Option(None, "--from", help="Sender address or name"),
    to: str = typer.Option(None, "--to", help="Recipient address or name"),
    subject: str = typer.Option(None, "--subject", help="Words in the subject"),
    unread: bool = typer.Option(False, "--unread", help="Only unread messages"),
    starred: bool = typer.Option(False, "--starred", help="Only starred messages"),
    has_attachment: bool = typer.Option(False, "--has-attachment", help="Only messages with attachments"),
    label: str = typer.Option(None, "--label", help="Gmail label"),
    after: str = typer.Option(None, "--after", help="After date (YYYY/MM/DD)"),
    before: str = typer.Option(None, "--before", help="Before date (YYYY/MM/DD)"),
    days: int = typer.Option(None, "--days", min=0, help="Within the last N days"),
    larger: str = typer.Option(None, "--larger", help="Larger than size (e.g. 5M)"),
    smaller: str = typer.Option(None, "--smaller", help="Smaller than size (e.g. 100K)"),
    filename: str = typer.Option(None, "--filename", help="Attachment filename or extension"),
    max_results: int = typer.Option(20, "--max-results", "-n", min=1, max=500, help="Maximum messages"),
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Search messages with structured filters."""
    if days is not None and not after:
        after = days_ago(days)

    query = build_query(
        query=query_arg,
        sender=sender,
        to=to,
        subject=subject,
        unread=unread,
        starred=starred,
        has_attachment=has_attachment,
        label=label,
        after=after,
        before=before,
        larger=larger,
        smaller=smaller,
        filename=filename,
    )
    if not query:
        raise typer.BadParameter("Provide a query or at least one filter.")

    result = _run(lambda gmail: _fetch_summaries(gmail, query, max_results))
    _emit_listing(output_format, result)


@app.command()
def get(
    id_arg: str = typer.Argument(None, metavar="[ID]", help="Message ID"),
    message_id: str = typer.Option(None, "--id", help="Message ID"),
    thread_id: str = typer.Option(None, "--thread", help="Show a whole thread"),
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Show a message or a thread with its body."""
    message_id = message_id or id_arg
    if not message_id and not thread_id:
        raise typer.BadParameter("Provide a message ID or --thread.")

    if thread_id:
        thread = _run(lambda gmail: gmail.get_thread(thread_id))
        details = [detail_message(m) for m in thread.get("messages") or []]
        _emit(
            output_format,
            {"id": thread.get("id", thread_id), "messages": details},
            format_thread_text(thread.get("id", thread_id), details),
        )
        return

    message = _run(lambda gmail: gmail.get_message(message_id, format="full"))
    detail = detail_message(message)
    _emit(output_format, detail, format_detail_text(detail))


@app.command()
def labels(output_format: OutputFormat = FORMAT_OPTION):
    """List Gmail labels."""
    items = _run(lambda gmail: gmail.list_labels())
    if output_format == OutputFormat.json:
        typer.echo(to_json(items))
        return

    table = Table(title="Labels")
    table.add_column("Name", style="cyan")
    table.add_column("ID")
    table.add_column("Type")
    for row in format_labels_rows(items):
        table.add_row(*row)
    console.print(table)


# ============================================================================
# Write
# ============================================================================


@app.command()
def send(
    to: str = typer.Option(None, "--to", help="Recipient(s), comma separated"),
    subject: str = typer.Option(None, "--subject", "-s", help="Subject line"),
    body: str = typer.Option(..., "--body", "-b", help="Message body ('-' reads stdin)"),
    cc: str = typer.Option(None, "--cc", help="Cc recipient(s)"),
    bcc: str = typer.Option(None, "--bcc", help="Bcc recipient(s)"),
    html: bool = typer.Option(False, "--html", help="Send the body as HTML"),
    reply_to: str = typer.Option(None, "--reply-to", help="Message ID to reply to"),
    draft: bool = typer.Option(False, "--draft", help="Save as a draft instead of sending"),
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Send an email or save a draft."""
    if body == "-":
        body = sys.stdin.read()
    if not to and not reply_to:
        raise typer.BadParameter("Provide --to or --reply-to.")
    if not subject and not reply_to:
        raise typer.BadParameter("Provide --subject.")

    async def _send(gmail: GmailClient) -> dict[str, Any]:
        fields: dict[str, Any] = {"to": to, "subject": subject, "in_reply_to": None, "references": None}
        thread_id = None
        if reply_to:
            original = await gmail.get_message(
                reply_to,
                format="metadata",
                metadata_headers=("From", "Reply-To", "Subject", "Message-ID", "References"),
            )
            reply = reply_headers(original)
            thread_id = reply.pop("thread_id")
            for key, value in reply.items():
                if not fields.get(key):
                    fields[key] = value
        if not fields["to"]:
            raise typer.BadParameter("Could not determine a recipient; pass --to.")

        raw = build_raw_message(
            to=fields["to"],
            subject=fields["subject"],
            body=body,
            cc=cc,
            bcc=bcc,
            html=html,
            in_reply_to=fields["in_reply_to"],
            references=fields["references"],
        )
        if draft:
            created = await gmail.create_draft(raw, thread_id=thread_id)
            message = created.get("message") or {}
            return {"draft": True, "id": created.get("id"), "messageId": message.get("id"), "threadId": message.get("threadId")}
        sent = await gmail.send_message(raw, thread_id=thread_id)
        return {"draft": False, "id": sent.get("id"), "threadId": sent.get("threadId")}

    result = _run(_send)
    if result["draft"]:
        text = f"✓ Draft saved (draft ID: {result['id']})"
    else:
        text = f"✓ Message sent (ID: {result['id']}, thread: {result['threadId']})"
    _emit(output_format, result, text)


@app.command()
def modify(
    id_arg: str = typer.Argument(None, metavar="[ID]", help="Message ID"),
    message_id: str = typer.Option(None, "--id", help="Message ID"),
    read: bool = typer.Option(False, "--read", help="Mark as read"),
    unread: bool = typer.Option(False, "--unread", help="Mark as unread"),
    star: bool = typer.Option(False, "--star", help="Add star"),
    unstar: bool = typer.Option(False, "--unstar", help="Remove star"),
    archive: bool = typer.Option(False, "--archive", help="Remove from inbox"),
    inbox: bool = typer.Option(False, "--inbox", help="Move back to inbox"),
    important: bool = typer.Option(False, "--important", help="Mark as important"),
    not_important: bool = typer.Option(False, "--not-important", help="Mark as not important"),
    trash: bool = typer.Option(False, "--trash", help="Move to trash"),
    untrash: bool = typer.Option(False, "--untrash", help="Restore from trash"),
    add_label: list[str] = typer.Option(None, "--add-label", help="Label name to add (repeatable)"),
    remove_label: list[str] = typer.Option(None, "--remove-label", help="Label name to remove (repeatable)"),
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Change a message's labels, archive or trash it."""
    message_id = message_id or id_arg
    if not message_id:
        raise typer.BadParameter("Provide a message ID.")
    if trash and untrash:
        raise typer.BadParameter("--trash and --untrash are mutually exclusive.")

    add: list[str] = []
    remove: list[str] = []
    for flag, label_id, target in (
        (read, "UNREAD", remove),
        (unread, "UNREAD", add),
        (star, "STARRED", add),
        (unstar, "STARRED", remove),
        (archive, "INBOX", remove),
        (inbox, "INBOX", add),
        (important, "IMPORTANT", add),
        (not_important, "IMPORTANT", remove),
    ):
        if flag:
            target.append(label_id)
    if set(add) & set(remove):
        raise typer.BadParameter("Conflicting flags: a label cannot be both added and removed.")

    add_names = add_label or []
    remove_names = remove_label or []
    if not (add or remove or add_names or remove_names or trash or untrash):
        raise typer.BadParameter("Nothing to do; pass at least one modification flag.")

    async def _modify(gmail: GmailClient) -> dict[str, Any]:
        if add_names or remove_names:
            available = await gmail.list_labels()
            try:
                add.extend(resolve_label_ids(add_names, available))
                remove.extend(resolve_label_ids(remove_names, available))
            except ValueError as exc:
                raise typer.BadParameter(str(exc)) from exc

        result: dict[str, Any] = {"id": message_id, "actions": []}
        if add or remove:
            updated = await gmail.modify_message(message_id, add_label_ids=add, remove_label_ids=remove)
            result["labels"] = updated.get("labelIds") or []
            result["actions"].append({"added": add, "removed": remove})
        if trash:
            updated = await gmail.trash_message(message_id)
            result["labels"] = updated.get("labelIds") or []
            result["actions"].append("trash")
        if untrash:
            updated = await gmail.untrash_message(message_id)
            result["labels"] = updated.get("labelIds") or []
            result["actions"].append("untrash")
        return result

    result = _run(_modify)
    text = f"✓ Updated {message_id}\n  Labels: {', '.join(result.get('labels', [])) or '(none)'}"
    _emit(output_format, result, text)


if __name__ == "__main__":
    app()
