"""
Google Calendar API client.
Thin async wrapper around the synchronous google-api-python-client.

Times are ISO-8601 strings and are passed through to the API untouched.
"""

import asyncio
import logging

from ..models import EventProposal
from .base import execute_request, with_retry

logger = logging.getLogger(__name__)


def _event_body(proposal: EventProposal, tz: str) -> dict:
    body = {
        "summary": proposal.summary,
        "start": {"dateTime": proposal.start_time, "timeZone": tz},
        "end": {"dateTime": proposal.end_time, "timeZone": tz},
    }
    if proposal.description is not None:
        body["description"] = proposal.description
    return body


class CalendarClient:
    """Wraps Google Calendar v3 API calls."""

    def __init__(self, token_file: str, timezone: str = "UTC", max_results: int = 250) -> None:
        self._token_file = token_file
        self._timezone = timezone
        self._max_results = max_results
        self._service_obj = None

    def _service(self):
        if self._service_obj is None:
            from googleapiclient.discovery import build  # type: ignore[import]
            from .auth import get_credentials
            self._service_obj = build(
                "calendar", "v3",
                credentials=get_credentials(self._token_file),
                cache_discovery=False,
            )
        return self._service_obj

    async def list_calendars(self) -> list[dict]:
        """Return every calendar on the user's calendar list."""
        def _sync():
            items: list[dict] = []
            page_token = None
            while True:
                result = execute_request(self._service().calendarList().list(pageToken=page_token))
                items.extend(result.get("items", []))
                page_token = result.get("nextPageToken")
                if not page_token:
                    return items
        return await with_retry(lambda: asyncio.to_thread(_sync))

    async def list_events(
        self,
        start_iso: str,
        end_iso: str,
        calendar_ids: list[str] | None = None,
    ) -> list[dict]:
        """
        List events between two ISO timestamps.

        An empty ``calendar_ids`` means every calendar on the user's list.
        Each returned event carries the ``calendarId`` it came from.
        """
        if not calendar_ids:
            calendar_ids = [c["id"] for c in await self.list_calendars()]

        def _sync(calendar_id: str) -> list[dict]:
            result = execute_request(self._service().events().list(
                calendarId=calendar_id,
                timeMin=start_iso,
                timeMax=end_iso,
                maxResults=self._max_results,
                singleEvents=True,
                orderBy="startTime",
            ))
            items = result.get("items", [])
            for item in items:
                item["calendarId"] = calendar_id
            return items

        events: list[dict] = []
        for calendar_id in calendar_ids:
            events.extend(
                await with_retry(lambda cid=calendar_id: asyncio.to_thread(_sync, cid))
            )
        return events

    async def free_busy(
        self,
        start_iso: str,
        end_iso: str,
        calendar_ids: list[str] | None = None,
    ) -> dict[str, dict]:
        """
        Busy intervals per calendar between two ISO timestamps.

        Returns ``{calendar_id: {"busy": [{"start", "end"}], "errors": [...]}}``
        as the freebusy endpoint reports it. An empty ``calendar_ids`` means
        every calendar on the user's list.
        """
        if not calendar_ids:
            calendar_ids = [c["id"] for c in await self.list_calendars()]
        body = {
            "timeMin": start_iso,
            "timeMax": end_iso,
            "items": [{"id": cid} for cid in calendar_ids],
        }

        def _sync() -> dict[str, dict]:
            result = execute_request(self._service().freebusy().query(body=body))
            return result.get("calendars", {})
        return await with_retry(lambda: asyncio.to_thread(_sync))

    async def create_event(self, proposal: EventProposal, calendar_id: str) -> dict:
        """Insert an event and return the created event dict from the API."""
        body = _event_body(proposal, self._timezone)

        def _sync():
            return execute_request(self._service().events().insert(
                calendarId=calendar_id, body=body
            ))
        event = await asyncio.to_thread(_sync)
        logger.info("Created event %s on %s", event.get("id"), calendar_id)
        return event

    async def delete_event(self, event_id: str, calendar_id: str) -> None:
        def _sync():
            execute_request(self._service().events().delete(
                calendarId=calendar_id, eventId=event_id
            ))
        await asyncio.to_thread(_sync)
        logger.info("Deleted event %s from %s", event_id, calendar_id)

    async def update_event(
        self, event_id: str, proposal: EventProposal, calendar_id: str
    ) -> dict:
        """Patch summary, times and description of an existing event."""
        body = _event_body(proposal, self._timezone)

        def _sync():
            return execute_request(self._service().events().patch(
                calendarId=calendar_id, eventId=event_id, body=body
            ))
        event = await asyncio.to_thread(_sync)
        logger.info("Updated event %s on %s", event_id, calendar_id)
        return event
