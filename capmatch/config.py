from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------
# Paths
# ---------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_CATALOG_SNAPSHOT_PATH = DATA_DIR / "catalog_snapshot.json"
CATALOG_SNAPSHOT_PATH = Path(
    os.getenv("CAPMATCH_CATALOG_PATH", str(DEFAULT_CATALOG_SNAPSHOT_PATH))
)

SUPPORTED_CATALOG_SUFFIXES = (".json", ".csv", ".parquet")


# ---------------------------
# Attribute vocabulary
# ---------------------------

# canonical value -> accepted alternate spellings
ATTRIBUTE_SYNONYMS: Dict[str, List[str]] = {
    "curved": ["curve", "slight curved"],
}


# ---------------------------
# Match policy
# ---------------------------

class MatchPolicy(BaseModel):
    """
    Every weight, penalty and cutoff the ranking engine applies.

    Weights keyed by the special-panel flag come in pairs: ``*_special``
    applies when the requested panel count equals ``special_panel_count``,
    ``*_default`` otherwise.
    """

    model_config = ConfigDict(frozen=True)

    special_panel_count: int = 7
    panel_tier_map: Dict[int, str] = Field(default_factory=lambda: {7: "Tier 3"})

    panel_weight_special: int = 50
    panel_weight_default: int = 45
    tier_weight: int = 30
    shape_weight_special: int = 35
    shape_weight_default: int = 25
    shape_penalty_special: int = -15
    shape_penalty_default: int = -10
    special_shape_bonus: int = 15
    profile_weight: int = 20
    structure_weight: int = 15

    min_accept_score: int = Field(default=10, ge=1)
    top_n: int = Field(default=5, ge=1)

    def panel_weight(self, target_panel_count: Optional[int]) -> int:
        if target_panel_count == self.special_panel_count:
            return self.panel_weight_special
        return self.panel_weight_default

    def shape_weight(self, target_panel_count: Optional[int]) -> int:
        if target_panel_count == self.special_panel_count:
            return self.shape_weight_special
        return self.shape_weight_default

    def shape_penalty(self, target_panel_count: Optional[int]) -> int:
        if target_panel_count == self.special_panel_count:
            return self.shape_penalty_special
        return self.shape_penalty_default


DEFAULT_POLICY = MatchPolicy()


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class MatchRequest(BaseModel):
    """
    Request body for POST /match.

    Accepts the camelCase field names the storefront sends as well as
    snake_case.
    """

    model_config = ConfigDict(populate_by_name=True)

    product_name: Optional[str] = Field(default=None, alias="productName")
    panel_count: Optional[int] = Field(default=None, alias="panelCount")
    bill_shape: Optional[str] = Field(default=None, alias="billShape")
    profile: Optional[str] = None
    structure: Optional[str] = None


class BreakdownItem(BaseModel):
    reason: str
    delta: int


class CandidateOut(BaseModel):
    """
    Public projection of a catalog entry plus its score trail.
    """

    id: str
    name: str
    code: str = ""
    panel_count: Optional[int] = None
    bill_shape: Optional[str] = None
    profile: Optional[str] = None
    structure_type: Optional[str] = None
    tier: Optional[str] = None
    nick_names: List[str] = Field(default_factory=list)
    score: int = 0
    breakdown: List[BreakdownItem] = Field(default_factory=list)


class MatchSteps(BaseModel):
    products_loaded: int
    exact_name_skipped: bool
    inferred_tier: Optional[str] = None
    inferred_panel_count: Optional[int] = None
    products_processed: int
    best_score: int
    matching_products_count: int
    threshold_met: bool
    fallback_used: bool


class MatchResponse(BaseModel):
    """
    Response body for POST /match.
    """

    input: MatchRequest
    steps: MatchSteps
    best_match: Optional[CandidateOut] = None
    success: bool
    matching_products: List[CandidateOut]
    timestamp: str


class TierStats(BaseModel):
    count: int
    panel_counts: List[int]
    bill_shapes: List[str]


class CatalogStatsResponse(BaseModel):
    """
    Response body for GET /catalog/stats.
    """

    total_products: int
    panel_count_stats: Dict[str, int]
    bill_shape_stats: Dict[str, int]
    tier_stats: Dict[str, TierStats]
    special_panel_products: List[CandidateOut]
    missing_tier_count: int
    recommendations: List[str]


class HealthResponse(BaseModel):
    """
    Response body for GET /health.
    """

    status: str
