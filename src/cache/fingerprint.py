# src/cache/fingerprint.py — v3
"""Content fingerprint for identification requests.

A request may carry several angles of the same object; they are treated as
variations of one session, so only the first normalised image is hashed.
Pure function, no I/O.
"""

from __future__ import annotations

import hashlib

from scavy.llm.models import ImageInput


def compute_fingerprint(images: list[ImageInput]) -> str:
    """SHA-256 hex digest of the first normalised image's bytes.

    Raises:
        ValueError: If no image is given.
    """
    if not images:
        raise ValueError("Cannot fingerprint an empty image set")
    return hashlib.sha256(images[0].data).hexdigest()
