from capmatch.config import MatchRequest, MatchResponse
from capmatch.mapping import map_result_to_response, to_api_item, to_cap_query
from capmatch.pipeline_types import CapQuery, CatalogEntry, PriceTier
from capmatch.ranking import rank_catalog


def _catalog():
    return [
        CatalogEntry(
            id="p-7",
            name="7P CrownFrame 7 MSCS",
            code="7P_CROWNFRAME_7_MSCS",
            panel_count=7,
            bill_shape="Slight Curved",
            profile="Mid",
            structure_type="Structured",
            pricing_tier=PriceTier(tier_name="Tier 3"),
            nick_names=("CrownFrame 7",),
        ),
        CatalogEntry(
            id="p-6",
            name="6P AirFrame",
            panel_count=6,
            bill_shape="Flat",
            profile="High",
            structure_type="Structured",
            pricing_tier=PriceTier(tier_name="Tier 1"),
        ),
    ]


def test_to_cap_query_accepts_camel_case_and_blanks():
    req = MatchRequest.model_validate(
        {"panelCount": 7, "billShape": "curved", "profile": "  ", "productName": ""}
    )
    query = to_cap_query(req)
    assert query == CapQuery(panel_count=7, bill_shape="curved")


def test_to_api_item_carries_breakdown():
    result = rank_catalog(CapQuery(panel_count=7, bill_shape="curved"), _catalog())
    item = to_api_item(result.best_match)

    assert item.id == "p-7"
    assert item.tier == "Tier 3"
    assert item.nick_names == ["CrownFrame 7"]
    assert item.score == sum(b.delta for b in item.breakdown)
    assert item.breakdown[0].reason.startswith("Panel count match")


def test_map_result_to_response_structure():
    req = MatchRequest(panel_count=7, bill_shape="curved", profile="mid", structure="structured")
    result = rank_catalog(to_cap_query(req), _catalog())

    resp = map_result_to_response(req, result)

    assert isinstance(resp, MatchResponse)
    assert resp.success
    assert resp.best_match.id == "p-7"
    assert resp.steps.products_loaded == 2
    assert resp.steps.inferred_tier == "Tier 3"
    assert resp.steps.threshold_met
    assert not resp.steps.fallback_used
    # p-6 nets zero (-15 shape, +15 structure) so it is not listed
    assert [c.id for c in resp.matching_products] == ["p-7"]
    assert resp.timestamp


def test_map_result_to_response_without_match():
    req = MatchRequest()
    resp = map_result_to_response(req, rank_catalog(to_cap_query(req), _catalog()))

    assert not resp.success
    assert resp.best_match is None
    assert resp.matching_products == []
    assert resp.steps.exact_name_skipped


def test_map_result_to_response_cuts_candidates_to_top_n():
    catalog = [
        CatalogEntry(
            id=f"six-{i}",
            name=f"6P Frame {i}",
            panel_count=6,
            pricing_tier=PriceTier(tier_name="Tier 1"),
        )
        for i in range(7)
    ]
    req = MatchRequest(panel_count=6)
    result = rank_catalog(to_cap_query(req), catalog)

    resp = map_result_to_response(req, result)
    assert len(result.candidates) == 7
    assert [c.id for c in resp.matching_products] == [f"six-{i}" for i in range(5)]
    assert resp.steps.matching_products_count == 7

    assert len(map_result_to_response(req, result, top_n=2).matching_products) == 2
