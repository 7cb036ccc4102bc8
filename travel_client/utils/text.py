"""Input normalization helpers."""

from __future__ import annotations


def normalize_email(email: str) -> str:
    """Lowercase and trim an email address before it reaches the identity provider."""

    return email.strip().lower()
