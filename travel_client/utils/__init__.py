"""Small helpers shared across client components."""

from .decoding import decode_row, decode_rows
from .text import normalize_email

__all__ = ["decode_row", "decode_rows", "normalize_email"]
