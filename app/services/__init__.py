"""Shared service exports."""

from .email import EmailConfigurationError, EmailSender, ResendEmailSender, get_email_sender

__all__ = [
    "EmailConfigurationError",
    "EmailSender",
    "ResendEmailSender",
    "get_email_sender",
]
