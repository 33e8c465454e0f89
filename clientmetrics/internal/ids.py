"""Identifier source for events, components and browser tabs."""
import uuid


def new_id():
    # type: () -> str
    """Return a random version 4 UUID string, e.g. ``"9f1c2e8a-5b7d-4c3e-8a1f-0d2b4c6e8f10"``."""
    return str(uuid.uuid4())
