from __future__ import annotations

"""
Catalog health report.

Answers "why does this request never find a match?" by summarising what
the loaded snapshot actually holds: products per panel count, bill shape
and tier, the special-panel products the fallback can pick from, and a
short list of gaps worth fixing in the product service.
"""

from collections import Counter
from typing import Dict, List, Sequence, Set

from loguru import logger

from .config import DEFAULT_POLICY, CatalogStatsResponse, MatchPolicy, TierStats
from .mapping import entry_to_api_item
from .normalize import values_match
from .pipeline_types import CatalogEntry

NO_TIER_LABEL = "No tier"
UNNAMED_TIER_LABEL = "Unnamed tier"
UNKNOWN_LABEL = "unknown"


def catalog_recommendations(
    entries: Sequence[CatalogEntry],
    policy: MatchPolicy = DEFAULT_POLICY,
) -> List[str]:
    special = policy.special_panel_count
    special_tier = policy.panel_tier_map.get(special)
    special_entries = [e for e in entries if e.panel_count == special]
    recs: List[str] = []

    if not special_entries:
        recs.append(
            f"CRITICAL: No {special}-panel products found. "
            f"Add {special}-panel products so the fallback has something to offer."
        )
    for shape in ("curved", "flat"):
        if not any(values_match(shape, e.bill_shape) for e in special_entries):
            recs.append(
                f"MISSING: No {special}-panel {shape} bill products. "
                f"Requests for a {special}-panel {shape} bill will not find matches."
            )

    if special_tier:
        tier_entries = [e for e in entries if e.tier_name == special_tier]
        if tier_entries and not any(e.panel_count == special for e in tier_entries):
            recs.append(
                f"TIER MISMATCH: {special_tier} products exist but none are {special}-panel."
            )

    unpublished = sum(1 for e in entries if not e.is_published)
    if unpublished:
        recs.append(
            f"INCOMPLETE: {unpublished} products have no pricing tier and are never matched."
        )
    return recs


def _tier_label(entry: CatalogEntry) -> str:
    if not entry.is_published:
        return NO_TIER_LABEL
    return entry.tier_name or UNNAMED_TIER_LABEL


def analyze_catalog(
    entries: Sequence[CatalogEntry],
    policy: MatchPolicy = DEFAULT_POLICY,
) -> CatalogStatsResponse:
    panel_counts = Counter(
        str(e.panel_count) if e.panel_count is not None else UNKNOWN_LABEL for e in entries
    )
    bill_shapes = Counter(e.bill_shape or UNKNOWN_LABEL for e in entries)

    tier_counts: Counter = Counter()
    tier_panels: Dict[str, Set[int]] = {}
    tier_shapes: Dict[str, Set[str]] = {}
    for e in entries:
        label = _tier_label(e)
        tier_counts[label] += 1
        if e.panel_count is not None:
            tier_panels.setdefault(label, set()).add(e.panel_count)
        if e.bill_shape:
            tier_shapes.setdefault(label, set()).add(e.bill_shape)

    tier_stats = {
        label: TierStats(
            count=count,
            panel_counts=sorted(tier_panels.get(label, set())),
            bill_shapes=sorted(tier_shapes.get(label, set())),
        )
        for label, count in tier_counts.items()
    }

    special = [entry_to_api_item(e) for e in entries if e.panel_count == policy.special_panel_count]
    recs = catalog_recommendations(entries, policy)

    logger.info(
        "Catalog analysis: {} products, {} special-panel, {} recommendations",
        len(entries), len(special), len(recs),
    )
    return CatalogStatsResponse(
        total_products=len(entries),
        panel_count_stats=dict(panel_counts),
        bill_shape_stats=dict(bill_shapes),
        tier_stats=tier_stats,
        special_panel_products=special,
        missing_tier_count=sum(1 for e in entries if not e.is_published),
        recommendations=recs,
    )
