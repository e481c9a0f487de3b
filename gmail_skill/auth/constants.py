"""Google OAuth constants."""

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"

GMAIL_SCOPES = (
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/gmail.modify",
)

DEFAULT_PORT = 3000
CALLBACK_PATH = "/callback"
CALLBACK_TIMEOUT_SEC = 5 * 60
EXPIRY_BUFFER_MS = 5 * 60 * 1000

TOKEN_FILENAME = "token.json"
CREDENTIALS_FILENAME = "credentials.json"
AUTH_COMMAND = "gmail-skill auth"

_PAGE_TEMPLATE = (
    "<!doctype html>"
    "<html lang=\"en\">"
    "<head>"
    "<meta charset=\"utf-8\" />"
    "<meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />"
    "<title>{title}</title>"
    "</head>"
    "<body>"
    "<p>{message}</p>"
    "</body>"
    "</html>"
)

SUCCESS_HTML = _PAGE_TEMPLATE.format(
    title="Authorization received",
    message="Authorization received. Return to your terminal to finish signing in.",
)
FAILURE_HTML = _PAGE_TEMPLATE.format(
    title="Authorization failed",
    message="Authorization failed. Return to your terminal for details.",
)
