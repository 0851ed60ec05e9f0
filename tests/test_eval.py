from capmatch.eval import DEFAULT_CASES, run_case, run_match_suite, summarize
from capmatch.pipeline_types import CatalogEntry, PriceTier


CATALOG = [
    CatalogEntry(
        id="p-7c",
        name="7P CrownFrame 7 MSCS",
        panel_count=7,
        bill_shape="Slight Curved",
        profile="Mid",
        structure_type="Structured",
        pricing_tier=PriceTier(tier_name="Tier 3"),
    ),
    CatalogEntry(
        id="p-6f",
        name="6P FlatFrame HSCS",
        panel_count=6,
        bill_shape="Flat",
        profile="High",
        structure_type="Structured",
        pricing_tier=PriceTier(tier_name="Tier 2"),
    ),
]


def test_summarize_counts_and_rate():
    summary = summarize([{"success": True}, {"success": False}, {"success": True}])
    assert summary == {"total": 3, "successful": 2, "failed": 1, "success_rate": "66.7%"}
    assert summarize([])["success_rate"] == "0.0%"


def test_run_case_reports_match():
    res = run_case(DEFAULT_CASES[0], CATALOG)
    assert res["success"]
    assert res["match"]["id"] == "p-7c"
    assert res["input"]["panelCount"] == 7
    assert res["threshold_met"]


def test_run_match_suite_defaults():
    report = run_match_suite(CATALOG)
    assert report["summary"]["total"] == len(DEFAULT_CASES)
    names = [r["test_case"] for r in report["results"]]
    assert names[0] == "7-panel curved bill"
    # every default case finds something in this catalog
    assert report["summary"]["successful"] == len(DEFAULT_CASES)


def test_run_match_suite_custom_cases():
    cases = [{"name": "nothing", "specs": {}}]
    report = run_match_suite(CATALOG, cases)
    assert report["summary"]["failed"] == 1
    assert report["results"][0]["match"] is None


def test_run_match_suite_with_empty_case_list_runs_nothing():
    report = run_match_suite(CATALOG, [])
    assert report["results"] == []
    assert report["summary"]["total"] == 0
