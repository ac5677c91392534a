"""ID types and generators for the types package.

Provides session and interaction ID generation, plus type aliases.
"""

from __future__ import annotations

import secrets
import string
import uuid
from datetime import datetime, timezone

# Type aliases
SessionId = str
InteractionId = str


def generate_session_id() -> SessionId:
    """Generate a unique session ID.

    Creates IDs in the format: sess-YYYYMMDD-HHMMSS-xxxxxxxx
    where xxxxxxxx is a random 8-character alphanumeric suffix.

    Example:
        >>> generate_session_id()  # e.g., "sess-20251208-143022-abc123de"
    """
    now = datetime.now(timezone.utc)
    timestamp = now.strftime("%Y%m%d-%H%M%S")
    suffix = "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(8))
    return f"sess-{timestamp}-{suffix}"


def generate_interaction_id() -> InteractionId:
    """Generate a globally unique interaction ID."""
    return f"int-{uuid.uuid4().hex}"
