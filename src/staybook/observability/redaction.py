"""Redaction helpers for safe logging and public exports.

Customer name, email and phone from booking rows must pass through these
before reaching a log line or a published file.
"""

import hashlib
import re

_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    """Redact phone and email patterns from free text (notes, requests)."""
    result = _PHONE_PATTERN.sub(_REDACTED, value)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    return result


def hash_identifier(value: str) -> str:
    """Non-reversible short hash, for correlating a customer across log lines."""
    return hashlib.sha256(value.strip().lower().encode()).hexdigest()[:12]


def mask_name(name: str) -> str:
    """Mask a customer name word by word for public summaries.

    Words of two characters or fewer are kept; longer words keep their
    first and last letter: "Taro Yamada" -> "T**o Y****a".
    """
    masked = []
    for word in name.split(" "):
        if len(word) <= 2:
            masked.append(word)
        else:
            masked.append(word[0] + "*" * (len(word) - 2) + word[-1])
    return " ".join(masked)
