"""
ID Generator Utility

Generates prefixed alphanumeric IDs for database entities and opaque
client-side row identifiers.
Uses cryptographically secure random generation.
"""

import secrets
import string
import uuid


def generate_id(prefix: str, length: int = 10) -> str:
    """
    Generate a prefixed alphanumeric ID.

    Args:
        prefix: The prefix for the ID (e.g., "REC_", "DRF_")
        length: Length of the random part (default 10)

    Returns:
        A string like "REC_7xK9mN2pQ4"

    Examples:
        >>> generate_id("REC_")
        'REC_7xK9mN2pQ4'
        >>> generate_id("SUB_", 12)
        'SUB_3fR8tY5wL1Km'
    """
    chars = string.ascii_letters + string.digits  # a-z, A-Z, 0-9 (62 chars)
    random_part = ''.join(secrets.choice(chars) for _ in range(length))
    return f"{prefix}{random_part}"


# Convenience functions for each entity type
def generate_record_id() -> str:
    return generate_id("REC_")


def generate_draft_id() -> str:
    return generate_id("DRF_")


def generate_submission_id() -> str:
    return generate_id("SUB_")


def generate_row_id() -> str:
    """Client-side row identifier. Never used as a storage key."""
    return str(uuid.uuid4())
