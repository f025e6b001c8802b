"""
Document extraction strategies for carrier tracking pages.

Each carrier page is described declaratively: which rows hold events, which
cell inside a row holds each field, and how dates are written. One generic
extractor turns any page into a FetchedTimeline using that description.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import quote
from bs4 import BeautifulSoup, Tag
from loguru import logger

from parceltrack.models import KST, CarrierId, FetchedTimeline, RawEvent, now_kst
from parceltrack.tracking.errors import NoTrackingData

HTML_PARSER = "lxml"


@dataclass(frozen=True)
class ExtractionStrategy:
    """
    Where the tracking data lives in one carrier's page.

    Column selectors are CSS selectors evaluated relative to each row.
    """

    row_selector: str
    date_selector: str
    status_selector: str
    location_selector: Optional[str] = None
    time_selector: Optional[str] = None  # when date and time sit in separate cells
    description_selector: Optional[str] = None
    date_format: str = "%Y.%m.%d %H:%M"
    min_cells: int = 0

    # Parties
    sender_selector: Optional[str] = None
    receiver_selector: Optional[str] = None

    # "No such tracking number" marker
    no_data_selector: Optional[str] = None
    no_data_markers: tuple[str, ...] = ()

    # Page-level status shown when the event table is missing
    summary_selector: Optional[str] = None


@dataclass(frozen=True)
class DocumentSource:
    """How to request one carrier page and how to read it."""

    name: str
    carrier: CarrierId
    url: str  # may contain {tracking_number}
    strategy: ExtractionStrategy
    method: str = "GET"
    form_field: Optional[str] = None  # POST form field carrying the number
    headers: dict[str, str] = field(default_factory=dict)

    def build_url(self, tracking_number: str, url: Optional[str] = None) -> str:
        """Page URL with the escaped tracking number, optionally on another host."""
        return (url or self.url).format(tracking_number=quote(tracking_number, safe=""))

    def build_form(self, tracking_number: str) -> Optional[dict[str, str]]:
        if self.method.upper() == "POST" and self.form_field:
            return {self.form_field: tracking_number}
        return None


def _cell_text(row: Tag, selector: Optional[str]) -> str:
    if not selector:
        return ""
    cell = row.select_one(selector)
    return cell.get_text(" ", strip=True) if cell else ""


def _page_text(soup: BeautifulSoup, selector: Optional[str]) -> Optional[str]:
    if not selector:
        return None
    node = soup.select_one(selector)
    if node is None:
        return None
    return node.get_text(" ", strip=True) or None


def parse_timestamp(
    text: str,
    date_format: str,
    now: Callable[[], datetime],
) -> datetime:
    """
    Parse a page timestamp in KST.

    A malformed timestamp yields now() so a real delivery row is never lost.
    """
    try:
        return datetime.strptime(" ".join(text.split()), date_format).replace(tzinfo=KST)
    except ValueError:
        logger.debug(f"Unparseable timestamp {text!r} (expected {date_format}), using now")
        return now()


def extract_document(
    strategy: ExtractionStrategy,
    html: str,
    now: Optional[Callable[[], datetime]] = None,
) -> FetchedTimeline:
    """
    Extract tracking events from a carrier page.

    Args:
        strategy: Page description for the carrier
        html: Raw document text
        now: Clock used for malformed timestamps

    Returns:
        FetchedTimeline with events in document order

    Raises:
        NoTrackingData: The page says the tracking number is unknown
    """
    now = now or now_kst
    soup = BeautifulSoup(html, HTML_PARSER)

    # Explicit "not found" marker
    if strategy.no_data_selector:
        marker_text = _page_text(soup, strategy.no_data_selector) or ""
        if marker_text and any(m in marker_text for m in strategy.no_data_markers):
            raise NoTrackingData(f"Carrier page reports no record: {marker_text[:80]}")

    events: list[RawEvent] = []

    for row in soup.select(strategy.row_selector):
        if strategy.min_cells and len(row.find_all("td")) < strategy.min_cells:
            continue

        date_text = _cell_text(row, strategy.date_selector)
        if not date_text:
            continue

        if strategy.time_selector:
            time_text = _cell_text(row, strategy.time_selector)
            if not time_text:
                continue
            date_text = f"{date_text} {time_text}"

        status_text = _cell_text(row, strategy.status_selector)
        location = _cell_text(row, strategy.location_selector) or None
        description = _cell_text(row, strategy.description_selector) or None

        events.append(RawEvent(
            timestamp=parse_timestamp(date_text, strategy.date_format, now),
            raw_location=location,
            raw_status_text=status_text,
            raw_description=description,
        ))

    # No rows: fall back to the page-level status if there is one
    if not events:
        summary = _page_text(soup, strategy.summary_selector)
        if summary:
            events.append(RawEvent(
                timestamp=now(),
                raw_location=None,
                raw_status_text=summary,
                raw_description=summary,
            ))

    return FetchedTimeline(
        events=events,
        sender_name=_page_text(soup, strategy.sender_selector),
        receiver_name=_page_text(soup, strategy.receiver_selector),
    )


# ===== Carrier page strategies =====

CJ_SITE = ExtractionStrategy(
    row_selector=".parcel-list tbody tr",
    date_selector="td:nth-of-type(1)",
    location_selector="td:nth-of-type(2)",
    status_selector="td:nth-of-type(3)",
    date_format="%Y.%m.%d %H:%M",
    sender_selector=".sender .name",
    receiver_selector=".receiver .name",
    no_data_selector="div.grid-error-wrap",
    no_data_markers=("조회된 결과가 없습니다", "운송장 정보를 찾을 수 없습니다"),
    summary_selector=".status-text",
)

CJ_DOORTODOOR = ExtractionStrategy(
    row_selector="table.ptb tbody tr",
    date_selector="td:nth-of-type(1)",
    time_selector="td:nth-of-type(2)",
    location_selector="td:nth-of-type(3)",
    status_selector="td:nth-of-type(4)",
    date_format="%Y.%m.%d %H:%M",
)

KOREA_POST_SITE = ExtractionStrategy(
    row_selector=".table_col tbody tr",
    date_selector="td:nth-of-type(1)",
    status_selector="td:nth-of-type(2)",
    location_selector="td:nth-of-type(3)",
    description_selector="td:nth-of-type(4)",
    date_format="%Y.%m.%d %H:%M",
    min_cells=4,
    sender_selector="th:-soup-contains('발송인') + td",
    receiver_selector="th:-soup-contains('수취인') + td",
    no_data_selector=".noData",
    no_data_markers=("배달정보를 찾지 못했습니다", "조회결과가 없습니다"),
)

LOTTE_SITE = ExtractionStrategy(
    row_selector=".trackingTable tbody tr",
    date_selector="td.date",
    status_selector="td.stat",
    location_selector="td.from",
    date_format="%Y-%m-%d %H:%M",
    sender_selector=".addrBox .from dd",
    receiver_selector=".addrBox .to dd",
    no_data_selector=".noData",
    no_data_markers=("배송정보가 없습니다", "조회된 내역이 없습니다"),
)

HANJIN_SITE = ExtractionStrategy(
    row_selector=".process-box .result-points",
    date_selector=".date",
    time_selector=".time",
    location_selector=".location",
    status_selector=".result",
    date_format="%Y.%m.%d %H:%M",
    sender_selector=".waybill-info .from .name",
    receiver_selector=".waybill-info .to .name",
    no_data_selector=".no-result",
    no_data_markers=("운송장이 등록되지 않았거나", "조회결과가 없습니다"),
)

LOGEN_SITE = ExtractionStrategy(
    row_selector="#result_waybill2 tbody tr",
    date_selector="td:nth-of-type(1)",
    time_selector="td:nth-of-type(2)",
    location_selector="td:nth-of-type(3)",
    status_selector="td:nth-of-type(4)",
    date_format="%Y.%m.%d %H:%M",
    min_cells=4,
    sender_selector="#result_waybill th:-soup-contains('보내는 분') + td",
    receiver_selector="#result_waybill th:-soup-contains('받는 분') + td",
    no_data_selector=".empty_result",
    no_data_markers=("운송장 번호를 확인", "조회된 데이터가 없습니다"),
)


BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
}

DOCUMENT_SOURCES: dict[str, DocumentSource] = {
    source.name: source
    for source in (
        DocumentSource(
            name="cj-site",
            carrier=CarrierId.CJ_KOREA_EXPRESS,
            url="https://www.cjlogistics.com/ko/tool/parcel/tracking",
            method="POST",
            form_field="paramInvcNo",
            strategy=CJ_SITE,
            headers={"Referer": "https://www.cjlogistics.com/"},
        ),
        DocumentSource(
            name="cj-doortodoor",
            carrier=CarrierId.CJ_KOREA_EXPRESS,
            url=(
                "https://www.doortodoor.co.kr/parcel/doortodoor.do"
                "?fsp_action=PARC_ACT_002&fsp_cmd=retrieveInvNoACT&invc_no={tracking_number}"
            ),
            strategy=CJ_DOORTODOOR,
        ),
        DocumentSource(
            name="koreapost-site",
            carrier=CarrierId.KOREA_POST,
            url="https://service.epost.go.kr/trace.RetrieveDomRigiTraceList.comm?sid1={tracking_number}",
            strategy=KOREA_POST_SITE,
        ),
        DocumentSource(
            name="lotte-site",
            carrier=CarrierId.LOTTE,
            url="https://www.lotteglogis.com/mobile/reservation/tracking/linkView?InvNo={tracking_number}",
            strategy=LOTTE_SITE,
        ),
        DocumentSource(
            name="hanjin-site",
            carrier=CarrierId.HANJIN,
            url=(
                "https://www.hanjin.co.kr/kor/CMS/DeliveryMgr/WaybillResult.do"
                "?mCode=MN038&schLang=KR&wblnumText2={tracking_number}"
            ),
            strategy=HANJIN_SITE,
        ),
        DocumentSource(
            name="logen-site",
            carrier=CarrierId.LOGEN,
            url="https://www.ilogen.com/web/personal/trace/{tracking_number}",
            strategy=LOGEN_SITE,
        ),
    )
}
