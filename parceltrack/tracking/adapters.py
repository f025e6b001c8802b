"""
Tracking source adapters.
One adapter per (carrier, data source): a structured JSON tracking API,
carrier tracking pages, or a synthetic generator used as the last resort.
"""

import asyncio
import random
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Optional
from urllib.parse import quote
import aiohttp
from loguru import logger

from parceltrack.carriers import get_carrier
from parceltrack.config import DEFAULT_USER_AGENT
from parceltrack.models import (
    KST,
    CanonicalStatus,
    CarrierId,
    FetchedTimeline,
    RawEvent,
    TrackingEvent,
    TrackingResult,
    now_kst,
)
from parceltrack.tracking.errors import FetchTimeout, NoTrackingData, SourceUnavailable
from parceltrack.tracking.extraction import BROWSER_HEADERS, DocumentSource, extract_document


class SourceAdapter(ABC):
    """Base class for tracking data sources."""

    synthetic = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs and results."""
        pass

    @abstractmethod
    async def fetch(self, tracking_number: str, budget: float) -> FetchedTimeline:
        """
        Fetch raw tracking events.

        Args:
            tracking_number: The tracking number
            budget: Seconds this call may take

        Raises:
            FetchError: SourceUnavailable, NoTrackingData or FetchTimeout
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class HttpSourceAdapter(SourceAdapter):
    """Shared aiohttp plumbing for network sources."""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT):
        self.user_agent = user_agent

    def _get_headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
        }
        if extra:
            headers.update(extra)
        return headers

    @abstractmethod
    async def _fetch(self, session: aiohttp.ClientSession, tracking_number: str) -> FetchedTimeline:
        pass

    async def fetch(self, tracking_number: str, budget: float) -> FetchedTimeline:
        timeout = aiohttp.ClientTimeout(total=budget)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                return await self._fetch(session, tracking_number)
        except asyncio.TimeoutError:
            raise FetchTimeout(f"{self.name} did not answer within {budget:.1f}s", self.name) from None
        except aiohttp.ClientError as e:
            raise SourceUnavailable(f"{self.name} request failed: {e}", self.name) from e


def _parse_iso(value: Any) -> datetime:
    if not isinstance(value, str) or not value:
        raise ValueError(f"missing timestamp: {value!r}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=KST)


class StructuredApiAdapter(HttpSourceAdapter):
    """
    JSON tracking API (tracker.delivery protocol).

    GET {base_url}/carriers/{slug}/tracks/{tracking_number} returns
    {"from": {...}, "to": {...}, "progresses": [...], "estimatedDeliveryAt": ...}.
    """

    DEFAULT_BASE_URL = "https://apis.tracker.delivery"

    def __init__(
        self,
        carrier: CarrierId,
        api_slug: str,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        super().__init__(user_agent)
        self.carrier = CarrierId(carrier)
        self.api_slug = api_slug
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return f"{self.carrier.value}-api"

    def build_url(self, tracking_number: str) -> str:
        return f"{self.base_url}/carriers/{self.api_slug}/tracks/{quote(tracking_number, safe='')}"

    async def _fetch(self, session: aiohttp.ClientSession, tracking_number: str) -> FetchedTimeline:
        headers = self._get_headers({
            "Accept": "application/json",
            "Referer": "https://tracker.delivery/",
            "Origin": "https://tracker.delivery",
        })

        async with session.get(self.build_url(tracking_number), headers=headers) as resp:
            if resp.status != 200:
                error = await resp.text()
                raise SourceUnavailable(
                    f"{self.name} returned HTTP {resp.status}: {error[:200]}", self.name
                )

            try:
                data = await resp.json(content_type=None)
            except ValueError as e:
                raise SourceUnavailable(f"{self.name} returned invalid JSON: {e}", self.name) from e

        return self.parse_response(data)

    def parse_response(self, data: Any) -> FetchedTimeline:
        """Parse a tracking API payload."""
        if not isinstance(data, dict) or not isinstance(data.get("progresses"), list):
            raise SourceUnavailable(f"{self.name} payload has no progresses array", self.name)

        progresses = data["progresses"]
        if not progresses:
            raise NoTrackingData(f"{self.name} has no events for this tracking number", self.name)

        events = []
        try:
            for progress in progresses:
                location = (progress.get("location") or {}).get("name") or None
                status = (progress.get("status") or {}).get("text") or ""
                description = progress.get("description") or None

                events.append(RawEvent(
                    timestamp=_parse_iso(progress.get("time")),
                    raw_location=location,
                    raw_status_text=status,
                    raw_description=description,
                ))

            estimated = data.get("estimatedDeliveryAt")
            estimated_delivery = _parse_iso(estimated) if estimated else None

        except (AttributeError, TypeError, ValueError) as e:
            raise SourceUnavailable(f"{self.name} payload is malformed: {e}", self.name) from e

        return FetchedTimeline(
            events=events,
            sender_name=(data.get("from") or {}).get("name") or None,
            receiver_name=(data.get("to") or {}).get("name") or None,
            estimated_delivery=estimated_delivery,
        )


class DocumentScrapeAdapter(HttpSourceAdapter):
    """Carrier tracking page scraped with a declarative extraction strategy."""

    def __init__(
        self,
        source: DocumentSource,
        url: Optional[str] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(user_agent)
        self.source = source
        self.url = url or source.url
        self.clock = clock or now_kst

    @property
    def name(self) -> str:
        return self.source.name

    async def _fetch(self, session: aiohttp.ClientSession, tracking_number: str) -> FetchedTimeline:
        headers = self._get_headers({**BROWSER_HEADERS, **self.source.headers})
        url = self.source.build_url(tracking_number, self.url)
        form = self.source.build_form(tracking_number)

        if form is not None:
            request = session.post(url, data=form, headers=headers)
        else:
            request = session.get(url, headers=headers)

        async with request as resp:
            if resp.status != 200:
                raise SourceUnavailable(f"{self.name} returned HTTP {resp.status}", self.name)
            html = await resp.text(errors="replace")

        return self.parse_document(html)

    def parse_document(self, html: str) -> FetchedTimeline:
        """Extract events from a fetched page."""
        try:
            fetched = extract_document(self.source.strategy, html, now=self.clock)
        except NoTrackingData as e:
            e.source = self.name
            raise
        except (ValueError, TypeError, AttributeError) as e:
            raise SourceUnavailable(f"{self.name} page could not be parsed: {e}", self.name) from e

        # No marker and no rows: a block page or a changed layout, not a missing parcel
        if not fetched.events:
            raise SourceUnavailable(f"{self.name} page had no recognizable tracking rows", self.name)

        return fetched


# Synthetic history building blocks
_SYNTHETIC_LOCATIONS = (
    "서울 중랑구 물류센터",
    "경기도 용인시 물류센터",
    "인천 서구 물류센터",
    "부산 사상구 물류센터",
    "대전 유성구 물류센터",
)

_SYNTHETIC_STAGES: dict[CanonicalStatus, tuple[str, str]] = {
    CanonicalStatus.RECEIVED: ("택배 접수됨", "택배가 접수되었습니다"),
    CanonicalStatus.PICKED_UP: ("집화처리", "상품을 인수하였습니다"),
    CanonicalStatus.IN_TRANSIT: ("배송중", "배송이 진행중입니다"),
    CanonicalStatus.OUT_FOR_DELIVERY: ("배송출발", "배송지역 지점에서 배송을 시작했습니다"),
}

# Final stage of a synthetic history; never delivered
_SYNTHETIC_FINAL_STAGES = (
    CanonicalStatus.PICKED_UP,
    CanonicalStatus.IN_TRANSIT,
    CanonicalStatus.OUT_FOR_DELIVERY,
)


class SyntheticAdapter(SourceAdapter):
    """
    Placeholder history generator.

    Never fails. Produces 2-4 events from RECEIVED up to a random non-terminal
    stage. Results are always marked degraded. Pass a seeded random.Random for
    reproducible output.
    """

    synthetic = True

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.rng = rng or random.Random()
        self.clock = clock or now_kst

    @property
    def name(self) -> str:
        return "synthetic"

    def _history(self) -> list[tuple[CanonicalStatus, RawEvent]]:
        """Oldest-first synthetic history."""
        now = self.clock()
        final = self.rng.choice(_SYNTHETIC_FINAL_STAGES)
        stages = list(CanonicalStatus.path()[: final.stage + 1])

        # Walk backwards from shortly before now
        moment = now - timedelta(minutes=self.rng.randint(5, 90))
        history = []
        for status in reversed(stages):
            status_text, description = _SYNTHETIC_STAGES[status]
            location = "집화점" if status == CanonicalStatus.RECEIVED else self.rng.choice(_SYNTHETIC_LOCATIONS)
            history.append((status, RawEvent(
                timestamp=moment,
                raw_location=location,
                raw_status_text=status_text,
                raw_description=description,
            )))
            moment -= timedelta(hours=self.rng.randint(3, 14), minutes=self.rng.randint(0, 59))

        history.reverse()
        return history

    def _estimated_delivery(self) -> datetime:
        tomorrow = self.clock() + timedelta(days=1)
        return tomorrow.replace(hour=self.rng.randint(13, 18), minute=0, second=0, microsecond=0)

    async def fetch(self, tracking_number: str, budget: float) -> FetchedTimeline:
        return FetchedTimeline(
            events=[raw for _, raw in self._history()],
            estimated_delivery=self._estimated_delivery(),
        )

    def generate(self, carrier: CarrierId, error: Optional[str] = None) -> TrackingResult:
        """
        Build a degraded TrackingResult from a synthetic history.

        Args:
            carrier: Carrier the result is reported for
            error: Explanation shown alongside the placeholder data
        """
        carrier = CarrierId(carrier)
        events = [
            TrackingEvent(
                time=raw.timestamp,
                location=raw.raw_location,
                status=status,
                description=raw.raw_description or raw.raw_status_text,
            )
            for status, raw in reversed(self._history())
        ]

        logger.debug(f"Synthetic result for {carrier.value}: {len(events)} events")

        return TrackingResult(
            carrier=carrier,
            carrier_name=get_carrier(carrier).name,
            events=events,
            current_status=events[0].status,
            current_location=events[0].location,
            estimated_delivery=self._estimated_delivery(),
            source=self.name,
            degraded=True,
            error=error,
        )
