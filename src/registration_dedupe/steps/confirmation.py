from __future__ import annotations

CONFIRMATION_MESSAGE = (
    "A similar registration was found in our system. "
    "Would you like to update the existing information? "
    'Please confirm by saying "yes" or "confirm".'
)


def generate_confirmation_message() -> str:
    """Prompt asking the user to approve an update. Never carries record data."""
    return CONFIRMATION_MESSAGE
