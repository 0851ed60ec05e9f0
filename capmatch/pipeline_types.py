"""Typed containers shared across the matching modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class PriceTier:
    """Price bracket a catalog entry is sold under, e.g. ``Tier 3``."""

    tier_name: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class CatalogEntry:
    """One product row as supplied by the product/pricing service."""

    id: str
    name: str
    code: str = ""
    panel_count: Optional[int] = None
    bill_shape: Optional[str] = None
    profile: Optional[str] = None
    structure_type: Optional[str] = None
    pricing_tier: Optional[PriceTier] = None
    nick_names: Tuple[str, ...] = ()

    @property
    def tier_name(self) -> Optional[str]:
        return self.pricing_tier.tier_name if self.pricing_tier else None

    @property
    def is_published(self) -> bool:
        return self.pricing_tier is not None


@dataclass(frozen=True)
class CapQuery:
    """Partial description of the cap a customer asked for. Every field is optional."""

    product_name: Optional[str] = None
    panel_count: Optional[int] = None
    bill_shape: Optional[str] = None
    profile: Optional[str] = None
    structure: Optional[str] = None


@dataclass(frozen=True)
class ScoreBreakdownEntry:
    reason: str
    delta: int


@dataclass
class RankedCandidate:
    """A scored catalog entry with the trail of points that produced its score."""

    entry: CatalogEntry
    score: int = 0
    breakdown: List[ScoreBreakdownEntry] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.entry.id

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def tier(self) -> Optional[str]:
        return self.entry.tier_name


@dataclass(frozen=True)
class MatchTrace:
    products_loaded: int
    exact_name_skipped: bool
    inferred_tier: Optional[str]
    inferred_panel_count: Optional[int]
    products_processed: int
    best_score: int
    matching_products_count: int
    threshold_met: bool
    fallback_used: bool


@dataclass
class RankingResult:
    best_match: Optional[RankedCandidate]
    candidates: List[RankedCandidate]
    threshold_met: bool
    fallback_used: bool
    trace: MatchTrace

    @property
    def success(self) -> bool:
        return self.best_match is not None
