"""Tests for data models."""

import pytest
from datetime import timedelta
from pydantic import ValidationError

from parceltrack.models import (
    CanonicalStatus,
    CarrierId,
    TrackingEvent,
    TrackingResult,
    parse_tracking_request,
)
from parceltrack.tracking.errors import RequestValidationError


class TestCanonicalStatus:
    """Tests for the status ordering."""

    def test_path_order(self):
        """Test on-path statuses are ordered by stage."""
        stages = [status.stage for status in CanonicalStatus.path()]
        assert stages == [0, 1, 2, 3, 4]
        assert CanonicalStatus.path()[-1] == CanonicalStatus.DELIVERED

    def test_off_path_statuses(self):
        """Test FAILED, ON_HOLD and UNKNOWN have no stage."""
        for status in (CanonicalStatus.FAILED, CanonicalStatus.ON_HOLD, CanonicalStatus.UNKNOWN):
            assert status.stage is None
            assert not status.is_on_path

    def test_reached(self):
        assert CanonicalStatus.DELIVERED.reached(CanonicalStatus.IN_TRANSIT)
        assert CanonicalStatus.IN_TRANSIT.reached(CanonicalStatus.IN_TRANSIT)
        assert not CanonicalStatus.RECEIVED.reached(CanonicalStatus.PICKED_UP)
        assert not CanonicalStatus.FAILED.reached(CanonicalStatus.RECEIVED)
        assert not CanonicalStatus.DELIVERED.reached(CanonicalStatus.ON_HOLD)


class TestTrackingResult:
    """Tests for TrackingResult invariants and serialization."""

    def _event(self, now, status, hours_ago=0):
        return TrackingEvent(
            time=now - timedelta(hours=hours_ago),
            location="대전 허브",
            status=status,
            description=status.value,
        )

    def test_empty_result_is_unknown(self):
        """Test a result without events reports UNKNOWN."""
        result = TrackingResult(carrier=CarrierId.HONAM)

        assert result.current_status == CanonicalStatus.UNKNOWN
        assert result.events == []
        assert result.degraded is False

    def test_events_must_be_newest_first(self, now):
        """Test ascending events are rejected."""
        with pytest.raises(ValidationError):
            TrackingResult(
                carrier=CarrierId.LOTTE,
                events=[
                    self._event(now, CanonicalStatus.RECEIVED, hours_ago=5),
                    self._event(now, CanonicalStatus.IN_TRANSIT, hours_ago=1),
                ],
                current_status=CanonicalStatus.RECEIVED,
            )

    def test_current_status_matches_latest_event(self, now):
        with pytest.raises(ValidationError):
            TrackingResult(
                carrier=CarrierId.LOTTE,
                events=[self._event(now, CanonicalStatus.IN_TRANSIT)],
                current_status=CanonicalStatus.DELIVERED,
            )

    def test_delivered_has_no_estimate(self, now):
        """Test a delivered result cannot carry an ETA."""
        with pytest.raises(ValidationError):
            TrackingResult(
                carrier=CarrierId.LOTTE,
                events=[self._event(now, CanonicalStatus.DELIVERED)],
                current_status=CanonicalStatus.DELIVERED,
                delivered_at=now,
                estimated_delivery=now + timedelta(days=1),
            )

    def test_delivered_at_requires_delivery(self, now):
        with pytest.raises(ValidationError):
            TrackingResult(
                carrier=CarrierId.LOTTE,
                events=[self._event(now, CanonicalStatus.IN_TRANSIT)],
                current_status=CanonicalStatus.IN_TRANSIT,
                delivered_at=now,
            )

    def test_payload_uses_camel_case(self, now):
        """Test JSON payload keys and the progresses alias."""
        result = TrackingResult(
            carrier=CarrierId.CJ_KOREA_EXPRESS,
            carrier_name="CJ대한통운",
            events=[self._event(now, CanonicalStatus.IN_TRANSIT)],
            current_status=CanonicalStatus.IN_TRANSIT,
            current_location="대전 허브",
            estimated_delivery=now + timedelta(days=1),
            source="cjkoreaexpress-api",
        )

        payload = result.to_payload()

        assert payload["carrier"] == "cjkoreaexpress"
        assert payload["carrierName"] == "CJ대한통운"
        assert payload["currentStatus"] == "in_transit"
        assert payload["currentLocation"] == "대전 허브"
        assert payload["degraded"] is False
        assert payload["error"] is None
        assert len(payload["progresses"]) == 1
        assert payload["progresses"][0]["status"] == "in_transit"
        assert payload["estimatedDelivery"].startswith("2024-03-16T12:00:00")


class TestParseTrackingRequest:
    """Tests for request validation."""

    def test_valid_request(self):
        identifier = parse_tracking_request({"carrier": "koreapost", "trackingNumber": " 6865123456789 "})

        assert identifier.carrier == CarrierId.KOREA_POST
        assert identifier.tracking_number == "6865123456789"

    def test_carrier_is_case_insensitive(self):
        identifier = parse_tracking_request({"carrier": "CJKoreaExpress", "trackingNumber": "1"})
        assert identifier.carrier == CarrierId.CJ_KOREA_EXPRESS

    def test_snake_case_number_accepted(self):
        identifier = parse_tracking_request({"carrier": "lotte", "tracking_number": "123"})
        assert identifier.tracking_number == "123"

    @pytest.mark.parametrize("payload", [
        {"carrier": "lotte"},
        {"trackingNumber": "123"},
        {"carrier": "", "trackingNumber": "123"},
        {"carrier": "lotte", "trackingNumber": "   "},
        {"carrier": "lotte", "trackingNumber": 123},
    ])
    def test_missing_fields(self, payload):
        """Test missing or blank fields are rejected."""
        with pytest.raises(RequestValidationError, match="required"):
            parse_tracking_request(payload)

    def test_unsupported_carrier(self):
        with pytest.raises(RequestValidationError, match="Unsupported carrier: fedex"):
            parse_tracking_request({"carrier": "fedex", "trackingNumber": "123"})

    def test_body_must_be_object(self):
        with pytest.raises(RequestValidationError, match="JSON object"):
            parse_tracking_request(["lotte", "123"])
