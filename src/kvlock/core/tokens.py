"""Owner token generation."""

from __future__ import annotations

import os
import socket
import uuid


def new_owner_token() -> str:
    """Return a token unique to one acquisition attempt.

    Host and pid keep tokens readable in ``redis-cli``; the random suffix keeps a
    restarted process from inheriting the lock of its previous incarnation.
    """
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex}"
