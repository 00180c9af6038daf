# src/__init__.py — v1
"""Scavy: tiered identification of salvageable device components."""

from scavy.version import __version__

__all__ = ["__version__"]
