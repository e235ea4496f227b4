"""Local account authentication with password reset and session context."""

__version__ = "0.1.0"
