from __future__ import annotations

"""
FastAPI application for the cap catalog matcher.

- POST /match ranks the loaded catalog against a partial cap description
  and returns the accepted match (or null) with the full step trace
- GET /catalog/stats summarises the loaded snapshot
- The catalog snapshot is loaded once at startup and only read afterwards
"""

from typing import List, Optional, Sequence

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .catalog_build import load_catalog_snapshot
from .catalog_stats import analyze_catalog
from .config import (
    CATALOG_SNAPSHOT_PATH,
    DEFAULT_POLICY,
    CatalogStatsResponse,
    HealthResponse,
    MatchPolicy,
    MatchRequest,
    MatchResponse,
)
from .mapping import map_result_to_response, to_cap_query
from .pipeline_types import CatalogEntry
from .ranking import rank_catalog


# -----------------------
# Pipeline
# -----------------------

def run_match(
    req: MatchRequest,
    catalog: Sequence[CatalogEntry],
    policy: MatchPolicy = DEFAULT_POLICY,
) -> MatchResponse:
    query = to_cap_query(req)
    logger.info("Matching request {}", req.model_dump(exclude_none=True))
    result = rank_catalog(query, catalog, policy)
    return map_result_to_response(req, result, policy.top_n)


# -----------------------
# FastAPI app + startup
# -----------------------

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_catalog: Optional[List[CatalogEntry]] = None


@app.on_event("startup")
def startup_event() -> None:
    global _catalog
    logger.info("Starting app warmup...")
    try:
        _catalog = load_catalog_snapshot(CATALOG_SNAPSHOT_PATH)
    except (FileNotFoundError, ValueError) as e:
        _catalog = None
        logger.warning("Catalog not loaded: {}", e)
        return
    logger.info("Warmup complete with {} products.", len(_catalog))


def _require_catalog() -> List[CatalogEntry]:
    if _catalog is None:
        raise HTTPException(status_code=500, detail="Catalog not loaded")
    return _catalog


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="healthy")


@app.post("/match", response_model=MatchResponse)
def match(req: MatchRequest) -> MatchResponse:
    catalog = _require_catalog()
    return run_match(req, catalog)


@app.get("/catalog/stats", response_model=CatalogStatsResponse)
def catalog_stats() -> CatalogStatsResponse:
    return analyze_catalog(_require_catalog())


# -----------------------
# CLI convenience
# -----------------------

def match_single_query(specs: dict) -> Optional[str]:
    """Name of the matched product for a dict of cap specs, or None."""
    global _catalog
    if _catalog is None:
        _catalog = load_catalog_snapshot(CATALOG_SNAPSHOT_PATH)
    response = run_match(MatchRequest.model_validate(specs), _catalog)
    return response.best_match.name if response.best_match else None
