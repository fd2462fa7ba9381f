"""Mailbox operations: list, read, get, save and send emails."""

__version__ = "0.1.0"