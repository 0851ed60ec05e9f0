from __future__ import annotations
"""
Mapping utilities between the matcher's internal types and the API schema.

Centralises the conversion of requests into CapQuery objects and of
RankingResult objects into the Pydantic response models, so the route
handlers and the match suite serialise results the same way.
"""

from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger

from .config import DEFAULT_POLICY, BreakdownItem, CandidateOut, MatchRequest, MatchResponse, MatchSteps
from .pipeline_types import CapQuery, CatalogEntry, RankedCandidate, RankingResult


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def to_cap_query(req: MatchRequest) -> CapQuery:
    """Blank strings in the request count as absent fields."""
    return CapQuery(
        product_name=_blank_to_none(req.product_name),
        panel_count=req.panel_count,
        bill_shape=_blank_to_none(req.bill_shape),
        profile=_blank_to_none(req.profile),
        structure=_blank_to_none(req.structure),
    )


def entry_to_api_item(entry: CatalogEntry) -> CandidateOut:
    return CandidateOut(
        id=entry.id,
        name=entry.name,
        code=entry.code,
        panel_count=entry.panel_count,
        bill_shape=entry.bill_shape,
        profile=entry.profile,
        structure_type=entry.structure_type,
        tier=entry.tier_name,
        nick_names=list(entry.nick_names),
    )


def to_api_item(candidate: RankedCandidate) -> CandidateOut:
    item = entry_to_api_item(candidate.entry)
    item.score = candidate.score
    item.breakdown = [BreakdownItem(reason=b.reason, delta=b.delta) for b in candidate.breakdown]
    return item


def map_result_to_response(
    req: MatchRequest,
    result: RankingResult,
    top_n: int = DEFAULT_POLICY.top_n,
) -> MatchResponse:
    """
    Convert a RankingResult into the diagnostic response body: the query
    echoed back, the step trace, the accepted match (or null) and the
    first ``top_n`` ranked candidates with their breakdowns.
    """
    trace = result.trace
    steps = MatchSteps(
        products_loaded=trace.products_loaded,
        exact_name_skipped=trace.exact_name_skipped,
        inferred_tier=trace.inferred_tier,
        inferred_panel_count=trace.inferred_panel_count,
        products_processed=trace.products_processed,
        best_score=trace.best_score,
        matching_products_count=trace.matching_products_count,
        threshold_met=trace.threshold_met,
        fallback_used=trace.fallback_used,
    )
    best = to_api_item(result.best_match) if result.best_match is not None else None
    candidates: List[CandidateOut] = [to_api_item(c) for c in result.candidates[:top_n]]

    logger.info("Mapped match result with {} ranked candidates", len(candidates))
    return MatchResponse(
        input=req,
        steps=steps,
        best_match=best,
        success=best is not None,
        matching_products=candidates,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
