"""
Static carrier metadata.
Display names, legacy carrier codes, structured API slugs and ETA lead times.
"""

from dataclasses import dataclass
from typing import Optional

from parceltrack.models import CarrierId


DEFAULT_LEAD_TIME_HOURS = 48


@dataclass(frozen=True)
class CarrierInfo:
    """Read-only description of one carrier."""

    carrier_id: CarrierId
    name: str
    code: str
    api_slug: Optional[str] = None  # carrier id on the structured tracking API
    lead_time_hours: int = DEFAULT_LEAD_TIME_HOURS


CARRIERS: dict[CarrierId, CarrierInfo] = {
    info.carrier_id: info
    for info in (
        CarrierInfo(CarrierId.CJ_KOREA_EXPRESS, "CJ대한통운", "04", "kr.cjlogistics", 24),
        CarrierInfo(CarrierId.KOREA_POST, "우체국택배", "01", "kr.epost", 48),
        CarrierInfo(CarrierId.LOTTE, "롯데택배", "08", "kr.lotte", 24),
        CarrierInfo(CarrierId.HANJIN, "한진택배", "05", "kr.hanjin", 24),
        CarrierInfo(CarrierId.LOGEN, "로젠택배", "06", "kr.logen"),
        CarrierInfo(CarrierId.COUPANG, "쿠팡", "94"),
        CarrierInfo(CarrierId.KDEXP, "경동택배", "23", "kr.kdexp"),
        CarrierInfo(CarrierId.CHUNIL, "천일택배", "17"),
        CarrierInfo(CarrierId.CVSNET, "GS편의점택배", "24", "kr.cvsnet"),
        CarrierInfo(CarrierId.CUPOST, "CU편의점택배", "46", "kr.cupost"),
        CarrierInfo(CarrierId.DAESIN, "대신택배", "22"),
        CarrierInfo(CarrierId.HOMEPICK, "홈픽", "54"),
        CarrierInfo(CarrierId.HANDEX, "한덱스", "18"),
        CarrierInfo(CarrierId.HONAM, "호남택배", "32"),
        CarrierInfo(CarrierId.ILYANG_LOGIS, "일양로지스", "11"),
        CarrierInfo(CarrierId.KYUNGJIN, "경진택배", "30"),
        CarrierInfo(CarrierId.NH_LOGIS, "농협물류", "12"),
        CarrierInfo(CarrierId.SEBANG, "세방택배", "29"),
        CarrierInfo(CarrierId.WARPEX, "워펙스", "37"),
        CarrierInfo(CarrierId.YELLOWCAP, "옐로우캡", "25"),
    )
}


def get_carrier(carrier: CarrierId) -> CarrierInfo:
    """Get metadata for a carrier."""
    return CARRIERS[CarrierId(carrier)]
