"""
Google Calendar integration package.
Requires a stored OAuth token (data/google_token.json) before use.

Calendar API calls retry transient failures with exponential backoff.
See base.py for implementation details.
"""

from .base import GoogleAPIError, execute_request, with_retry
from .calendar import CalendarClient

__all__ = ["CalendarClient", "GoogleAPIError", "execute_request", "with_retry"]
