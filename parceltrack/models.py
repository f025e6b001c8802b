"""
Data models for the parcel tracking engine.
Defines carriers, canonical statuses, raw source events and the normalized
tracking result returned to callers.

Tracking flow:
1. Validate the (carrier, tracking number) request
2. Build the carrier's fallback chain of data sources
3. Fetch raw events from the first source that answers
4. Classify and assemble them into a TrackingResult
5. Substitute synthetic data when every source fails
"""

from enum import Enum
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel


# Carrier systems report local Korean time
KST = timezone(timedelta(hours=9), name="KST")


def now_kst() -> datetime:
    """Current time in KST."""
    return datetime.now(KST)


class CarrierId(str, Enum):
    """Supported parcel carriers."""

    # Major carriers
    CJ_KOREA_EXPRESS = "cjkoreaexpress"
    KOREA_POST = "koreapost"
    LOTTE = "lotte"
    HANJIN = "hanjin"
    LOGEN = "logen"
    COUPANG = "coupang"

    # Mid-size carriers
    KDEXP = "kdexp"
    CHUNIL = "chunil"
    CVSNET = "cvsnet"
    CUPOST = "cupost"

    # Specialist carriers
    DAESIN = "daesin"
    HOMEPICK = "homepick"
    HANDEX = "handex"
    HONAM = "honam"
    ILYANG_LOGIS = "ilyanglogis"
    KYUNGJIN = "kyungjin"
    NH_LOGIS = "nhlogis"
    SEBANG = "sebang"
    WARPEX = "warpex"
    YELLOWCAP = "yellowcap"


class CanonicalStatus(str, Enum):
    """
    Carrier-independent delivery stage.

    RECEIVED < PICKED_UP < IN_TRANSIT < OUT_FOR_DELIVERY < DELIVERED form the
    delivery path. FAILED, ON_HOLD and UNKNOWN are off-path and have no stage.
    """

    RECEIVED = "received"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    FAILED = "failed"
    ON_HOLD = "on_hold"
    UNKNOWN = "unknown"

    @classmethod
    def path(cls) -> tuple["CanonicalStatus", ...]:
        """On-path statuses in delivery order."""
        return (
            cls.RECEIVED,
            cls.PICKED_UP,
            cls.IN_TRANSIT,
            cls.OUT_FOR_DELIVERY,
            cls.DELIVERED,
        )

    @property
    def stage(self) -> Optional[int]:
        """Position on the delivery path, or None for off-path statuses."""
        path = CanonicalStatus.path()
        return path.index(self) if self in path else None

    @property
    def is_on_path(self) -> bool:
        return self.stage is not None

    def reached(self, other: "CanonicalStatus") -> bool:
        """
        Whether this status has reached the given path stage.

        Off-path statuses never reach anything and cannot be reached.
        """
        if self.stage is None or other.stage is None:
            return False
        return self.stage >= other.stage


class TrackingIdentifier(BaseModel):
    """A (carrier, tracking number) pair."""

    model_config = ConfigDict(frozen=True)

    carrier: CarrierId
    tracking_number: str = Field(min_length=1)

    @field_validator("tracking_number", mode="before")
    @classmethod
    def _strip_number(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value


class RawEvent(BaseModel):
    """One milestone exactly as a single source reported it."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    raw_location: Optional[str] = None
    raw_status_text: str
    raw_description: Optional[str] = None


class FetchedTimeline(BaseModel):
    """Everything a source returned on a successful fetch."""

    model_config = ConfigDict(frozen=True)

    events: list[RawEvent] = Field(default_factory=list)
    sender_name: Optional[str] = None
    receiver_name: Optional[str] = None

    # Only set when the source itself reports an ETA
    estimated_delivery: Optional[datetime] = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TrackingEvent(_CamelModel):
    """A normalized timeline entry."""

    time: datetime
    location: Optional[str] = None
    status: CanonicalStatus
    description: str


class TrackingResult(_CamelModel):
    """Normalized tracking answer for one request."""

    carrier: CarrierId
    carrier_name: Optional[str] = None

    # Timeline, newest first
    events: list[TrackingEvent] = Field(default_factory=list, alias="progresses")

    # Current state
    current_status: CanonicalStatus = CanonicalStatus.UNKNOWN
    current_location: Optional[str] = None

    # Dates
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    # Parties
    sender_name: Optional[str] = None
    receiver_name: Optional[str] = None

    # Provenance
    source: Optional[str] = None
    degraded: bool = False
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "TrackingResult":
        for newer, older in zip(self.events, self.events[1:]):
            if newer.time < older.time:
                raise ValueError("events must be sorted newest first")

        expected = self.events[0].status if self.events else CanonicalStatus.UNKNOWN
        if self.current_status != expected:
            raise ValueError(
                f"current_status {self.current_status.value} does not match "
                f"newest event status {expected.value}"
            )

        delivered = self.current_status == CanonicalStatus.DELIVERED
        if delivered and self.estimated_delivery is not None:
            raise ValueError("estimated_delivery must be unset once delivered")
        if not delivered and self.delivered_at is not None:
            raise ValueError("delivered_at is only set for delivered parcels")

        return self

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and the timeline as `progresses`."""
        return self.model_dump(mode="json", by_alias=True)


def parse_tracking_request(payload: Any) -> TrackingIdentifier:
    """
    Validate a raw tracking request body.

    Args:
        payload: Decoded request body, expected {"carrier", "trackingNumber"}

    Returns:
        TrackingIdentifier for the orchestrator

    Raises:
        RequestValidationError: On missing fields or an unsupported carrier
    """
    from parceltrack.tracking.errors import RequestValidationError

    if not isinstance(payload, dict):
        raise RequestValidationError("Request body must be a JSON object")

    carrier = payload.get("carrier")
    tracking_number = payload.get("trackingNumber", payload.get("tracking_number"))

    if not isinstance(carrier, str) or not carrier.strip():
        raise RequestValidationError("Both carrier and trackingNumber are required")
    if not isinstance(tracking_number, str) or not tracking_number.strip():
        raise RequestValidationError("Both carrier and trackingNumber are required")

    try:
        carrier_id = CarrierId(carrier.strip().lower())
    except ValueError:
        raise RequestValidationError(f"Unsupported carrier: {carrier}") from None

    try:
        return TrackingIdentifier(carrier=carrier_id, tracking_number=tracking_number)
    except ValidationError as e:
        raise RequestValidationError(f"Invalid tracking request: {e.errors()[0]['msg']}") from None
