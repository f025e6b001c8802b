"""
Timeline assembler.
Turns the raw events of one successful source into a TrackingResult.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from parceltrack.carriers import get_carrier
from parceltrack.models import (
    CanonicalStatus,
    CarrierId,
    RawEvent,
    TrackingEvent,
    TrackingResult,
    now_kst,
)
from parceltrack.tracking.errors import EmptyTimelineError
from parceltrack.tracking.vocabulary import classify_event


def normalize_events(carrier: CarrierId, events: Sequence[RawEvent]) -> list[TrackingEvent]:
    """
    Classify raw events and order them newest first.

    Exact duplicates are dropped. Events with the same time keep their input
    order.
    """
    seen = set()
    normalized = []

    for raw in events:
        event = TrackingEvent(
            time=raw.timestamp,
            location=raw.raw_location or None,
            status=classify_event(carrier, raw),
            description=raw.raw_description or raw.raw_status_text,
        )
        key = (event.time, event.location, event.status, event.description)
        if key in seen:
            continue
        seen.add(key)
        normalized.append(event)

    # sorted() is stable with reverse=True
    return sorted(normalized, key=lambda e: e.time, reverse=True)


def assemble(
    carrier: CarrierId,
    events: Sequence[RawEvent],
    *,
    sender_name: Optional[str] = None,
    receiver_name: Optional[str] = None,
    estimated_delivery: Optional[datetime] = None,
    source: Optional[str] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> TrackingResult:
    """
    Build the canonical tracking result.

    Args:
        carrier: Carrier whose vocabulary classifies the events
        events: Raw events from one source, any order
        sender_name: Sender reported by the source
        receiver_name: Receiver reported by the source
        estimated_delivery: ETA reported by the source, if any
        source: Name of the source adapter
        now: Clock for the default ETA

    Raises:
        EmptyTimelineError: No events to assemble
    """
    carrier = CarrierId(carrier)
    if not events:
        raise EmptyTimelineError(f"No events to assemble for {carrier.value}", source)

    info = get_carrier(carrier)
    timeline = normalize_events(carrier, events)
    latest = timeline[0]

    delivered_at = None
    if latest.status == CanonicalStatus.DELIVERED:
        delivered_at = latest.time
        estimated_delivery = None
    elif estimated_delivery is None:
        clock = now or now_kst
        estimated_delivery = clock() + timedelta(hours=info.lead_time_hours)

    return TrackingResult(
        carrier=carrier,
        carrier_name=info.name,
        events=timeline,
        current_status=latest.status,
        current_location=latest.location,
        estimated_delivery=estimated_delivery,
        delivered_at=delivered_at,
        sender_name=sender_name or None,
        receiver_name=receiver_name or None,
        source=source,
        degraded=False,
    )
