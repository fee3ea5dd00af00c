"""Solana vanity address search server."""

__version__ = "1.0.0"
