"""Push notifications through an ntfy server."""

from __future__ import annotations

import logging
import os
from datetime import date
from typing import Any, Dict, Optional, Sequence, Tuple

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from adapters.base import NotificationError, NotificationSink
from flats.models import Apartment

LOGGER = logging.getLogger(__name__)

DEFAULT_SERVER = "https://ntfy.sh"
FLOORPLANS_URL = "https://flatsatpcm.com/floorplans/"
MAX_LISTED_UNITS = 3


def format_date(value: Optional[date], missing: str = "TBD") -> str:
    """Format *value* as "Sep 05" for message bodies."""

    if value is None:
        return missing
    return f"{value.strftime('%b')} {value.day:02d}"


def format_unit_line(apt: Apartment, missing: str = "TBD") -> str:
    return (
        f"{apt.floorplan_name} - #{apt.unit_number} - ${apt.rent:,} - "
        f"Available {format_date(apt.availability_date, missing)}"
    )


def format_new_units(apartments: Sequence[Apartment]) -> Tuple[str, str]:
    """Return the (title, message) pair announcing *apartments*."""

    if len(apartments) == 1:
        return "New Unit Available", format_unit_line(apartments[0], missing="Date TBD")

    title = f"{len(apartments)} New Units Available"
    if len(apartments) <= MAX_LISTED_UNITS:
        return title, " | ".join(format_unit_line(apt) for apt in apartments)

    studios = sum(1 for apt in apartments if apt.bedroom_count == 0)
    one_beds = sum(1 for apt in apartments if apt.bedroom_count == 1)
    parts = []
    if studios:
        parts.append(f"{studios} studio{'s' if studios > 1 else ''}")
    if one_beds:
        parts.append(f"{one_beds} 1BR{'s' if one_beds > 1 else ''}")
    return title, f"{', '.join(parts)} - View all at flatsatpcm.com/floorplans"


class NtfyNotifier(NotificationSink):
    """Publishes JSON messages to ``NTFY_SERVER`` on topic ``NTFY_TOPIC``."""

    name = "ntfy"

    def __init__(
        self,
        topic: Optional[str] = None,
        server: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        topic = topic or os.environ.get("NTFY_TOPIC")
        if not topic:
            raise ValueError("Missing required NTFY_TOPIC environment variable")
        self.topic = topic
        self.server = (server or os.environ.get("NTFY_SERVER") or DEFAULT_SERVER).rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)
        LOGGER.info("Notification service initialized with ntfy topic: %s", topic)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        wait=wait_exponential_jitter(initial=1, max=8),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _publish(self, payload: Dict[str, Any]) -> httpx.Response:
        resp = await self.client.post(self.server, json={"topic": self.topic, **payload})
        resp.raise_for_status()
        return resp

    async def notify_new(self, apartments: Sequence[Apartment]) -> None:
        if not apartments:
            LOGGER.info("No new apartments to notify about")
            return

        title, message = format_new_units(apartments)
        LOGGER.info("Sending ntfy notification: %s - %s", title, message)
        payload = {
            "title": title,
            "message": message,
            "tags": ["house", "apartment"],
            "priority": 4,
            "actions": [
                {
                    "action": "view",
                    "label": "View Floorplan" if len(apartments) == 1 else "View All",
                    "url": FLOORPLANS_URL,
                }
            ],
        }
        try:
            await self._publish(payload)
        except httpx.HTTPError as exc:
            LOGGER.error("Failed to send ntfy notification: %s", exc)
            raise NotificationError(f"Notification sending failed: {exc}") from exc
        LOGGER.info("Notification sent")

    async def notify_error(self, message: str, context: Optional[str] = None) -> None:
        body = f"Context: {context}\nError: {message}" if context else f"Error: {message}"
        payload = {
            "title": "Apartment Crawler Error",
            "message": body,
            "tags": ["warning", "rotating_light"],
            "priority": 5,
        }
        try:
            await self._publish(payload)
        except Exception as exc:
            LOGGER.error("Failed to send error notification: %s", exc)
            return
        LOGGER.info("Error notification sent")

    async def send_test(self) -> bool:
        payload = {
            "title": "Test Notification",
            "message": "Apartment Crawler notification system is working!",
            "tags": ["test_tube"],
            "priority": 3,
        }
        try:
            await self._publish(payload)
        except httpx.HTTPError as exc:
            LOGGER.error("Test notification failed: %s", exc)
            return False
        return True

    async def close(self) -> None:
        await self.client.aclose()
