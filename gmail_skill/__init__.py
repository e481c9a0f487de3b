"""gmail-skill - Gmail access for coding assistants."""

__version__ = "0.1.0"
__logo__ = "📬"
