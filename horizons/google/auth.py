"""
OAuth credential loading for Google APIs.

The interactive consent flow lives outside this package; here we only load
the stored authorized-user token and refresh it when it has expired.
"""

import logging
import os

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]


def get_credentials(token_file: str):
    """Load credentials from *token_file*, refreshing and re-saving if expired."""
    from google.auth.transport.requests import Request  # type: ignore[import]
    from google.oauth2.credentials import Credentials  # type: ignore[import]

    if not os.path.exists(token_file):
        raise FileNotFoundError(
            f"Google token not found at {token_file}. Authorise the Google account first."
        )

    creds = Credentials.from_authorized_user_file(token_file, SCOPES)
    if creds.expired and creds.refresh_token:
        logger.info("Refreshing expired Google credentials")
        creds.refresh(Request())
        with open(token_file, "w", encoding="utf-8") as f:
            f.write(creds.to_json())
    return creds


def is_configured(token_file: str) -> bool:
    """True if a usable token file exists."""
    try:
        creds = get_credentials(token_file)
    except Exception as e:
        logger.debug("Google credentials unavailable: %s", e)
        return False
    return not creds.expired
