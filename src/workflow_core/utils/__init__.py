"""Utility helpers."""

from .hashing import hash_secret, verify_secret

__all__ = ["hash_secret", "verify_secret"]
