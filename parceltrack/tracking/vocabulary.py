"""
Status vocabulary.
Maps carrier-specific status text onto CanonicalStatus.

Every carrier owns its keyword table. The same word can mean different stages
at different carriers, so tables are never shared. Rules are checked in order
and the first rule with a matching keyword wins, which lets specific phrases
such as "미배달" shadow generic ones such as "배달".
"""

from typing import Optional

from parceltrack.models import CanonicalStatus, CarrierId, RawEvent


Rule = tuple[tuple[str, ...], CanonicalStatus]

DEFAULT_STATUS = CanonicalStatus.IN_TRANSIT


_CJ_RULES: tuple[Rule, ...] = (
    (("미배달", "배달실패", "배송실패"), CanonicalStatus.FAILED),
    (("보류", "보관"), CanonicalStatus.ON_HOLD),
    (("배달완료", "배송완료"), CanonicalStatus.DELIVERED),
    (("배달출발", "배송출발"), CanonicalStatus.OUT_FOR_DELIVERY),
    (("집화완료", "집화처리", "상품인수"), CanonicalStatus.PICKED_UP),
    (("접수",), CanonicalStatus.RECEIVED),
    (("간선상차", "간선하차", "이동중", "도착"), CanonicalStatus.IN_TRANSIT),
)

_KOREA_POST_RULES: tuple[Rule, ...] = (
    (("미배달", "배달실패", "반송"), CanonicalStatus.FAILED),
    (("보관",), CanonicalStatus.ON_HOLD),
    (("배달완료",), CanonicalStatus.DELIVERED),
    (("배달준비",), CanonicalStatus.OUT_FOR_DELIVERY),
    (("접수",), CanonicalStatus.RECEIVED),
    (("발송",), CanonicalStatus.PICKED_UP),
    (("도착", "집중국"), CanonicalStatus.IN_TRANSIT),
)

_LOTTE_RULES: tuple[Rule, ...] = (
    (("배달불가", "미배달"), CanonicalStatus.FAILED),
    (("배달완료",), CanonicalStatus.DELIVERED),
    (("배달출발", "배송출발"), CanonicalStatus.OUT_FOR_DELIVERY),
    (("집하", "접수"), CanonicalStatus.PICKED_UP),
    (("이동중", "도착"), CanonicalStatus.IN_TRANSIT),
)

_HANJIN_RULES: tuple[Rule, ...] = (
    (("미배송", "배송실패", "미배달"), CanonicalStatus.FAILED),
    (("배달완료", "배송완료"), CanonicalStatus.DELIVERED),
    (("배송출발", "배달출발"), CanonicalStatus.OUT_FOR_DELIVERY),
    (("집하완료",), CanonicalStatus.PICKED_UP),
    (("상품접수",), CanonicalStatus.RECEIVED),
    (("간선", "입고", "출고"), CanonicalStatus.IN_TRANSIT),
)

# Logen reports terse text, so the generic "완료"/"배달" rule comes last
_LOGEN_RULES: tuple[Rule, ...] = (
    (("미배달", "배달실패"), CanonicalStatus.FAILED),
    (("배달출발", "배송출발", "배달준비"), CanonicalStatus.OUT_FOR_DELIVERY),
    (("접수",), CanonicalStatus.RECEIVED),
    (("집하",), CanonicalStatus.PICKED_UP),
    (("배달완료", "배송완료", "완료", "배달"), CanonicalStatus.DELIVERED),
)

_KDEXP_RULES: tuple[Rule, ...] = (
    (("배송실패", "미배송"), CanonicalStatus.FAILED),
    (("배송완료", "배달완료", "인수완료"), CanonicalStatus.DELIVERED),
    (("배송출발", "배달출발"), CanonicalStatus.OUT_FOR_DELIVERY),
    (("집하", "집화"), CanonicalStatus.PICKED_UP),
    (("접수",), CanonicalStatus.RECEIVED),
)

_CVSNET_RULES: tuple[Rule, ...] = (
    (("반품", "배송실패"), CanonicalStatus.FAILED),
    (("점포보관", "보관중"), CanonicalStatus.ON_HOLD),
    (("배송완료", "수령완료", "픽업완료"), CanonicalStatus.DELIVERED),
    (("배송출발", "배달출발"), CanonicalStatus.OUT_FOR_DELIVERY),
    (("점포접수", "접수"), CanonicalStatus.RECEIVED),
    (("집하", "점포출고"), CanonicalStatus.PICKED_UP),
)

_CUPOST_RULES: tuple[Rule, ...] = (
    (("반품", "배송불가"), CanonicalStatus.FAILED),
    (("보관",), CanonicalStatus.ON_HOLD),
    (("배송완료", "수령완료"), CanonicalStatus.DELIVERED),
    (("배송출발", "배달출발"), CanonicalStatus.OUT_FOR_DELIVERY),
    (("집하", "집화"), CanonicalStatus.PICKED_UP),
    (("접수",), CanonicalStatus.RECEIVED),
)


STATUS_RULES: dict[CarrierId, tuple[Rule, ...]] = {
    CarrierId.CJ_KOREA_EXPRESS: _CJ_RULES,
    CarrierId.KOREA_POST: _KOREA_POST_RULES,
    CarrierId.LOTTE: _LOTTE_RULES,
    CarrierId.HANJIN: _HANJIN_RULES,
    CarrierId.LOGEN: _LOGEN_RULES,
    CarrierId.KDEXP: _KDEXP_RULES,
    CarrierId.CVSNET: _CVSNET_RULES,
    CarrierId.CUPOST: _CUPOST_RULES,
}


def match(carrier: CarrierId, raw_text: Optional[str]) -> Optional[CanonicalStatus]:
    """Return the first matching status for the text, or None."""
    if not raw_text:
        return None

    text = raw_text.strip()
    for keywords, status in STATUS_RULES.get(CarrierId(carrier), ()):
        if any(keyword in text for keyword in keywords):
            return status

    return None


def classify(carrier: CarrierId, raw_text: Optional[str]) -> CanonicalStatus:
    """
    Classify carrier status text.

    Ambiguous or unknown text is reported as in transit.
    """
    return match(carrier, raw_text) or DEFAULT_STATUS


def classify_event(carrier: CarrierId, event: RawEvent) -> CanonicalStatus:
    """Classify a raw event by its status text, then by its description."""
    return (
        match(carrier, event.raw_status_text)
        or match(carrier, event.raw_description)
        or DEFAULT_STATUS
    )
