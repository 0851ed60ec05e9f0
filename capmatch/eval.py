# capmatch/eval.py
from __future__ import annotations

import argparse
import json
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from .catalog_build import load_catalog_snapshot
from .config import CATALOG_SNAPSHOT_PATH, DEFAULT_POLICY, MatchPolicy, MatchRequest
from .mapping import to_api_item, to_cap_query
from .pipeline_types import CatalogEntry
from .ranking import rank_catalog

# ---------- default cases ----------

DEFAULT_CASES: List[Dict[str, Any]] = [
    {
        "name": "7-panel curved bill",
        "specs": {"panelCount": 7, "billShape": "curved", "profile": "mid", "structure": "structured"},
    },
    {
        "name": "7-panel flat bill",
        "specs": {"panelCount": 7, "billShape": "flat", "profile": "high", "structure": "structured"},
    },
    {
        "name": "6-panel curved bill",
        "specs": {"panelCount": 6, "billShape": "curved", "profile": "mid", "structure": "structured"},
    },
    {
        "name": "6-panel flat bill",
        "specs": {"panelCount": 6, "billShape": "flat", "profile": "high", "structure": "structured"},
    },
    {
        "name": "5-panel flat bill",
        "specs": {"panelCount": 5, "billShape": "flat", "profile": "mid", "structure": "structured"},
    },
    {
        "name": "'curved' should match 'Slight Curved'",
        "specs": {"panelCount": 7, "billShape": "curved", "profile": "mid"},
    },
    {
        "name": "Exact product name lookup",
        "specs": {"productName": "7P CrownFrame 7 MSCS", "panelCount": 7, "billShape": "curved"},
    },
]

# ---------- suite ----------

def run_case(
    case: Dict[str, Any],
    catalog: Sequence[CatalogEntry],
    policy: MatchPolicy = DEFAULT_POLICY,
) -> Dict[str, Any]:
    req = MatchRequest.model_validate(case.get("specs") or {})
    start = time.perf_counter()
    result = rank_catalog(to_cap_query(req), catalog, policy)
    duration_ms = (time.perf_counter() - start) * 1000.0

    best = result.best_match
    return {
        "test_case": case.get("name", ""),
        "input": req.model_dump(by_alias=True, exclude_none=True),
        "success": best is not None,
        "duration_ms": round(duration_ms, 3),
        "threshold_met": result.threshold_met,
        "fallback_used": result.fallback_used,
        "match": to_api_item(best).model_dump() if best is not None else None,
    }


def summarize(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    total = len(results)
    successful = sum(1 for r in results if r["success"])
    rate = (successful / total * 100.0) if total else 0.0
    return {
        "total": total,
        "successful": successful,
        "failed": total - successful,
        "success_rate": f"{rate:.1f}%",
    }


def run_match_suite(
    catalog: Sequence[CatalogEntry],
    cases: Optional[List[Dict[str, Any]]] = None,
    policy: MatchPolicy = DEFAULT_POLICY,
) -> Dict[str, Any]:
    """
    Rank every case against the catalog and report which ones found a match.
    """
    cases = DEFAULT_CASES if cases is None else cases
    results = []
    for case in cases:
        res = run_case(case, catalog, policy)
        logger.info(
            "Case {!r}: {}",
            res["test_case"],
            res["match"]["name"] if res["match"] else "No match",
        )
        results.append(res)
    summary = summarize(results)
    logger.info("Match suite: {}/{} cases matched", summary["successful"], summary["total"])
    return {"summary": summary, "results": results}

# ---------- CLI ----------

def _read_cases(path: Path) -> List[Dict[str, Any]]:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("testCases") or data.get("cases") or []
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of cases in {path}")
    return data


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--catalog", type=Path, default=CATALOG_SNAPSHOT_PATH,
                    help="Path to the catalog snapshot (JSON, CSV or Parquet)")
    ap.add_argument("--cases", type=Path, default=None,
                    help="Optional JSON file with [{name, specs}, ...] cases")
    args = ap.parse_args()

    catalog = load_catalog_snapshot(args.catalog)
    cases = _read_cases(args.cases) if args.cases else None
    report = run_match_suite(catalog, cases)

    for res in report["results"]:
        found = res["match"]["name"] if res["match"] else "No match"
        print(f"{res['test_case']}: {found}")
    s = report["summary"]
    print(f"Matched {s['successful']}/{s['total']} ({s['success_rate']})")

if __name__ == "__main__":
    main()
