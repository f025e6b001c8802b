"""
Fallback chain builder.

Chains are ordered cheapest and most reliable first: the structured tracking
API, then the carrier's own page, then backup pages, and always the synthetic
generator last.
"""

import random
from datetime import datetime
from typing import Callable, Optional

from parceltrack.carriers import get_carrier
from parceltrack.config import TrackerConfig, get_config
from parceltrack.models import CarrierId
from parceltrack.tracking.adapters import (
    DocumentScrapeAdapter,
    SourceAdapter,
    StructuredApiAdapter,
    SyntheticAdapter,
)
from parceltrack.tracking.extraction import DOCUMENT_SOURCES


# Page sources per carrier, own site first, then backups
PAGE_SOURCES: dict[CarrierId, tuple[str, ...]] = {
    CarrierId.CJ_KOREA_EXPRESS: ("cj-site", "cj-doortodoor"),
    CarrierId.KOREA_POST: ("koreapost-site",),
    CarrierId.LOTTE: ("lotte-site",),
    CarrierId.HANJIN: ("hanjin-site",),
    CarrierId.LOGEN: ("logen-site",),
}


def supports_realtime(carrier: CarrierId) -> bool:
    """Whether the carrier has at least one real data source."""
    carrier = CarrierId(carrier)
    return bool(get_carrier(carrier).api_slug or PAGE_SOURCES.get(carrier))


def build_chain(
    carrier: CarrierId,
    config: Optional[TrackerConfig] = None,
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> list[SourceAdapter]:
    """
    Build the ordered list of sources to try for a carrier.

    Args:
        carrier: Carrier to track
        config: Source URLs and user agent (global config if omitted)
        rng: Random source for the synthetic generator
        clock: Clock for page timestamps and synthetic data

    Returns:
        Non-empty list whose last element is a SyntheticAdapter
    """
    carrier = CarrierId(carrier)
    config = config or get_config()
    info = get_carrier(carrier)

    chain: list[SourceAdapter] = []

    if info.api_slug:
        chain.append(StructuredApiAdapter(
            carrier=carrier,
            api_slug=info.api_slug,
            base_url=config.structured_api_url,
            user_agent=config.user_agent,
        ))

    for source_name in PAGE_SOURCES.get(carrier, ()):
        chain.append(DocumentScrapeAdapter(
            DOCUMENT_SOURCES[source_name],
            user_agent=config.user_agent,
            clock=clock,
        ))

    if rng is None and config.synthetic_seed is not None:
        rng = random.Random(config.synthetic_seed)

    chain.append(SyntheticAdapter(rng=rng, clock=clock))
    return chain
