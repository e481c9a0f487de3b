"""Gmail OAuth login and token management."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import webbrowser
from typing import Any, Callable

import httpx

from gmail_skill.auth.constants import TOKEN_URL
from gmail_skill.auth.errors import (
    AuthorizationTimeoutError,
    NotAuthenticatedError,
    ProviderDeniedError,
    RefreshFailedError,
)
from gmail_skill.auth.models import AuthConfig, ClientCredentials, GmailToken, is_token_expired
from gmail_skill.auth.server import _start_local_server
from gmail_skill.auth.state import build_authorization_url, create_state
from gmail_skill.auth.storage import (
    delete_token_file,
    load_client_credentials,
    load_token_file,
    save_token_file,
)
from gmail_skill.mail.client import GmailClient

logger = logging.getLogger(__name__)

_FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict):
        return str(payload.get("error_description") or payload.get("error") or payload)
    return str(payload)


class GmailAuth:
    """Authorization-code flow and token lifecycle for one credentials/token pair."""

    def __init__(self, config: AuthConfig, transport: httpx.BaseTransport | None = None):
        self.config = config
        # Shared by the sync and async clients; httpx.MockTransport implements both.
        self._transport = transport

    # ------------------------------------------------------------------
    # Token endpoint
    # ------------------------------------------------------------------

    async def _exchange_code_for_token(self, credentials: ClientCredentials, code: str) -> GmailToken:
        data = {
            "grant_type": "authorization_code",
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "code": code,
            "redirect_uri": self.config.redirect_uri,
        }
        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.post(TOKEN_URL, data=data, headers=_FORM_HEADERS)
        except httpx.HTTPError as exc:
            raise ProviderDeniedError(f"Token exchange failed: {exc}") from exc
        if response.status_code != 200:
            raise ProviderDeniedError(f"Token exchange failed: {response.status_code} {_error_detail(response)}")

        try:
            return GmailToken.from_token_response(response.json())
        except ValueError as exc:
            raise ProviderDeniedError(f"Token exchange returned an invalid response: {exc}") from exc

    def _refresh_token(self, credentials: ClientCredentials, token: GmailToken) -> GmailToken:
        data = {
            "grant_type": "refresh_token",
            "refresh_token": token.refresh_token,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
        }
        try:
            with httpx.Client(timeout=30.0, transport=self._transport) as client:
                response = client.post(TOKEN_URL, data=data, headers=_FORM_HEADERS)
        except httpx.HTTPError as exc:
            raise RefreshFailedError(f"Token refresh failed: {exc}") from exc
        if response.status_code != 200:
            raise RefreshFailedError(f"Token refresh failed: {response.status_code} {_error_detail(response)}")

        try:
            refreshed = GmailToken.from_token_response(response.json())
        except ValueError as exc:
            raise RefreshFailedError(f"Token refresh returned an invalid response: {exc}") from exc

        # Google usually does not rotate the refresh token.
        token.access_token = refreshed.access_token
        token.expiry_date = refreshed.expiry_date
        token.refresh_token = refreshed.refresh_token or token.refresh_token
        token.scope = refreshed.scope or token.scope
        token.token_type = refreshed.token_type or token.token_type
        token.extra.update(refreshed.extra)
        return token

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_token(self) -> GmailToken:
        """Get a usable token, refreshing it when it is about to expire."""
        credentials = load_client_credentials(self.config.credentials_path)
        token = load_token_file(self.config.token_path)
        if token is None:
            raise NotAuthenticatedError("Not authenticated with Gmail.")

        if not is_token_expired(token):
            return token

        if not token.refresh_token:
            raise RefreshFailedError("Access token expired and no refresh token is stored.")

        logger.debug("Access token near expiry, refreshing")
        refreshed = self._refresh_token(credentials, token)
        save_token_file(self.config.token_path, refreshed)
        return refreshed

    def authorized_client(self) -> GmailClient:
        """Return a Gmail API client carrying a fresh access token."""
        token = self.get_token()
        return GmailClient(token.access_token)

    def logout(self) -> bool:
        return delete_token_file(self.config.token_path)

    def status(self) -> dict[str, Any]:
        """Describe the stored credentials and token without exposing secrets."""
        token = load_token_file(self.config.token_path)
        info: dict[str, Any] = {
            "credentials_path": str(self.config.credentials_path),
            "credentials_present": self.config.credentials_path.exists(),
            "token_path": str(self.config.token_path),
            "authenticated": token is not None,
        }
        if token is not None:
            info.update(
                {
                    "expiry_date": token.expiry_date,
                    "expires_in": token_expires_in(token),
                    "expired": is_token_expired(token),
                    "has_refresh_token": bool(token.refresh_token),
                    "scopes": token.scopes,
                }
            )
        return info

    def login_interactive(
        self,
        on_auth: Callable[[str], None] | None = None,
        on_progress: Callable[[str], None] | None = None,
        open_browser: bool = True,
    ) -> GmailToken:
        """Interactive login flow."""
        credentials = load_client_credentials(self.config.credentials_path)

        async def _login_async() -> GmailToken:
            state = create_state()
            url = build_authorization_url(
                credentials.client_id,
                self.config.redirect_uri,
                self.config.scopes,
                state,
            )

            loop = asyncio.get_running_loop()
            code_future: asyncio.Future[str] = loop.create_future()

            def _set_code(code_value: str) -> None:
                if not code_future.done():
                    code_future.set_result(code_value)

            def _set_error(exc: Exception) -> None:
                if not code_future.done():
                    code_future.set_exception(exc)

            def _notify_code(code_value: str) -> None:
                if code_future.done():
                    return
                loop.call_soon_threadsafe(_set_code, code_value)

            def _notify_error(exc: Exception) -> None:
                if code_future.done():
                    return
                loop.call_soon_threadsafe(_set_error, exc)

            server = _start_local_server(
                state,
                self.config.port,
                on_code=_notify_code,
                on_error=_notify_error,
            )
            try:
                if open_browser:
                    webbrowser.open(url)
                if on_auth:
                    on_auth(url)
                if on_progress:
                    on_progress("Waiting for browser callback...")
                try:
                    code = await asyncio.wait_for(code_future, timeout=self.config.timeout)
                except asyncio.TimeoutError as exc:
                    raise AuthorizationTimeoutError(
                        f"No authorization callback received within {int(self.config.timeout)} seconds."
                    ) from exc
            finally:
                server.shutdown()
                server.server_close()

            if on_progress:
                on_progress("Exchanging authorization code for tokens...")
            token = await self._exchange_code_for_token(credentials, code)
            save_token_file(self.config.token_path, token)
            logger.info("Stored Gmail token at %s", self.config.token_path)
            return token

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(_login_async())

        result: list[GmailToken] = []
        error: list[BaseException] = []

        def _runner() -> None:
            try:
                result.append(asyncio.run(_login_async()))
            except BaseException as exc:
                error.append(exc)

        thread = threading.Thread(target=_runner)
        thread.start()
        thread.join()
        if error:
            raise error[0]
        return result[0]


def token_expires_in(token: GmailToken, now_ms: int | None = None) -> int | None:
    """Seconds until the token's expiry, or None when it has no expiry."""
    if token.expiry_date is None:
        return None
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return (token.expiry_date - now_ms) // 1000
