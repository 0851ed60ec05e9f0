from __future__ import annotations

"""
Catalog ranking for cap match requests.

Given a partial description of the cap a customer wants and a snapshot of
the catalog, pick the entry that fits best:

1. exact-name lookup is noted in the trace only (never short-circuits);
2. a price tier is inferred from the requested panel count;
3. every published entry (one with a price tier) is scored in one pass;
   the best is kept with a strict ``>`` so the first entry wins ties;
4. the best is accepted only at or above ``min_accept_score``;
5. when nothing is accepted and the special panel count was requested,
   the first published entry with that panel count is returned instead;
6. every positive-scoring entry is returned, stably sorted by score;
   callers cut the list to ``top_n`` for display.

All weights come from :class:`capmatch.config.MatchPolicy`.
"""

from functools import reduce
from typing import Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from .config import DEFAULT_POLICY, MatchPolicy
from .normalize import contains_value, normalize_value, values_equal, values_match
from .pipeline_types import (
    CapQuery,
    CatalogEntry,
    MatchTrace,
    RankedCandidate,
    RankingResult,
    ScoreBreakdownEntry,
)


def infer_tier(panel_count: Optional[int], policy: MatchPolicy = DEFAULT_POLICY) -> Optional[str]:
    """Tier implied by the requested panel count, if the policy maps it."""
    if panel_count is None:
        return None
    return policy.panel_tier_map.get(panel_count)


def score_entry(
    entry: CatalogEntry,
    query: CapQuery,
    inferred_tier: Optional[str] = None,
    policy: MatchPolicy = DEFAULT_POLICY,
) -> RankedCandidate:
    """
    Score one catalog entry against the query.

    Attributes missing on either side contribute nothing. The bill shape
    is the only attribute that can subtract points.
    """
    target = query.panel_count
    special = target is not None and target == policy.special_panel_count
    breakdown: List[ScoreBreakdownEntry] = []

    def add(delta: int, reason: str) -> None:
        breakdown.append(ScoreBreakdownEntry(reason=reason, delta=delta))

    panel_matched = target is not None and entry.panel_count == target
    if panel_matched:
        weight = policy.panel_weight(target)
        add(weight, f"Panel count match: +{weight}")

    if inferred_tier and entry.tier_name == inferred_tier:
        add(policy.tier_weight, f"Tier match: +{policy.tier_weight}")

    if normalize_value(query.bill_shape) and normalize_value(entry.bill_shape):
        if values_match(query.bill_shape, entry.bill_shape):
            weight = policy.shape_weight(target)
            add(weight, f"Bill shape match: +{weight}")
            if panel_matched and special:
                add(
                    policy.special_shape_bonus,
                    f"{policy.special_panel_count}-panel + bill shape bonus: "
                    f"+{policy.special_shape_bonus}",
                )
        else:
            penalty = policy.shape_penalty(target)
            add(penalty, f"Bill shape mismatch: {penalty}")

    if values_equal(query.profile, entry.profile):
        add(policy.profile_weight, f"Profile match: +{policy.profile_weight}")

    if contains_value(query.structure, entry.structure_type):
        add(policy.structure_weight, f"Structure match: +{policy.structure_weight}")

    return RankedCandidate(
        entry=entry,
        score=sum(item.delta for item in breakdown),
        breakdown=breakdown,
    )


def _keep_best(
    acc: Tuple[int, Optional[RankedCandidate]],
    candidate: RankedCandidate,
) -> Tuple[int, Optional[RankedCandidate]]:
    # strictly greater: on equal scores the earlier entry stays
    if candidate.score > acc[0]:
        return candidate.score, candidate
    return acc


def select_best(
    candidates: Iterable[RankedCandidate],
) -> Tuple[int, Optional[RankedCandidate]]:
    """Highest strictly-positive score, first-encountered on ties."""
    return reduce(_keep_best, candidates, (0, None))


def select_fallback(
    catalog: Sequence[CatalogEntry],
    panel_count: Optional[int],
    policy: MatchPolicy = DEFAULT_POLICY,
) -> Optional[CatalogEntry]:
    """
    First published entry with the special panel count, in catalog order.

    Only applies when the special panel count was requested; scores are
    ignored.
    """
    if panel_count is None or panel_count != policy.special_panel_count:
        return None
    for entry in catalog:
        if entry.is_published and entry.panel_count == policy.special_panel_count:
            return entry
    return None


def top_candidates(
    candidates: Sequence[RankedCandidate],
    n: Optional[int] = None,
) -> List[RankedCandidate]:
    """Stable score-descending sort, truncated to ``n`` when given."""
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
    return ranked if n is None else ranked[:n]


def rank_catalog(
    query: CapQuery,
    catalog: Sequence[CatalogEntry],
    policy: MatchPolicy = DEFAULT_POLICY,
) -> RankingResult:
    """
    Rank the catalog snapshot against a query.

    Never raises for an empty query, an empty catalog or entries with
    missing attributes; "no match" is a ``best_match`` of ``None``.
    """
    exact_name_skipped = not normalize_value(query.product_name)
    if exact_name_skipped:
        logger.debug("No exact product name provided, matching on specs")
    else:
        # TODO: exact-name / nick_names lookup; confirm with product whether it should short-circuit scoring
        logger.debug("Exact product name {!r} requested; matching on specs", query.product_name)

    inferred_tier = infer_tier(query.panel_count, policy)
    logger.debug("Inference: panel_count={} tier={}", query.panel_count, inferred_tier)

    scored = [
        score_entry(entry, query, inferred_tier, policy)
        for entry in catalog
        if entry.is_published
    ]
    matching = [c for c in scored if c.score > 0]
    best_score, best = select_best(scored)
    logger.debug(
        "Scored {} published products, {} positive, best score {}",
        len(scored), len(matching), best_score,
    )

    threshold_met = best is not None and best_score >= policy.min_accept_score
    fallback_used = False
    if not threshold_met:
        best = None
        fallback = select_fallback(catalog, query.panel_count, policy)
        if fallback is not None:
            fallback_used = True
            best = _as_fallback(fallback, scored, policy)
            logger.debug("Fallback selected {}", fallback.name)

    trace = MatchTrace(
        products_loaded=len(catalog),
        exact_name_skipped=exact_name_skipped,
        inferred_tier=inferred_tier,
        inferred_panel_count=query.panel_count,
        products_processed=len(scored),
        best_score=best_score,
        matching_products_count=len(matching),
        threshold_met=threshold_met,
        fallback_used=fallback_used,
    )

    logger.info(
        "Match result: {} (score={}, threshold_met={}, fallback={})",
        best.name if best else None, best_score, threshold_met, fallback_used,
    )

    return RankingResult(
        best_match=best,
        candidates=top_candidates(matching),
        threshold_met=threshold_met,
        fallback_used=fallback_used,
        trace=trace,
    )


def _as_fallback(
    entry: CatalogEntry,
    scored: Sequence[RankedCandidate],
    policy: MatchPolicy,
) -> RankedCandidate:
    original = next((c for c in scored if c.entry is entry), None)
    score = original.score if original else 0
    breakdown = list(original.breakdown) if original else []
    breakdown.append(
        ScoreBreakdownEntry(
            reason=f"Fallback: first {policy.special_panel_count}-panel product",
            delta=0,
        )
    )
    return RankedCandidate(entry=entry, score=score, breakdown=breakdown)
