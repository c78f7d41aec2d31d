"""Tests for property payload parsing and the HTTP property provider."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from lotwise.services.payloads import parse_float, parse_int, parse_positive, pick, str_list
from lotwise.services.property_data import HttpPropertyProvider, parse_property_payload


# ──────────────────────────────────────────────────────────────
# FIXTURES
# ──────────────────────────────────────────────────────────────

SERVICE_PAYLOAD = {
    "bcAssessment": {
        "address": "5100 Joyce St",
        "lotSize": "6,820",
        "totalAssessedValue": "$1,850,000",
        "zoning": " RS-1 ",
        "latitude": 49.2384,
        "longitude": -123.0318,
    },
    "mlsComparables": [
        {"address": "5120 Joyce St", "soldPrice": 1_900_000, "squareFootage": 2200, "daysOnMarket": 12},
        {"address": "5140 Joyce St", "listPrice": "2,050,000", "squareFootage": "2,400"},
        "junk",
    ],
    "marketAnalysis": {
        "averagePricePerSqFt": 850,
        "marketTrend": "Rising",
        "averageDaysOnMarket": 18,
        "priceRange": {"min": 1_700_000, "max": 2_300_000},
    },
}


def _mock_client_class(mock_client_class, status_code=200, payload=None):
    mock_resp = MagicMock()
    mock_resp.status_code = status_code
    mock_resp.json.return_value = payload
    mock_resp.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    mock_client.get.return_value = mock_resp
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=False)
    return mock_client, mock_resp


# ──────────────────────────────────────────────────────────────
# COERCION HELPERS
# ──────────────────────────────────────────────────────────────

class TestCoercion:
    def test_parse_float(self):
        assert parse_float("1,850,000") == 1_850_000
        assert parse_float("$2,600") == 2600
        assert parse_float(42) == 42.0
        assert parse_float("n/a") is None
        assert parse_float(None) is None
        assert parse_float(True) is None
        assert parse_float(float("nan")) is None

    def test_parse_int(self):
        assert parse_int("12") == 12
        assert parse_int("12.9") == 12
        assert parse_int("") is None

    def test_parse_positive(self):
        assert parse_positive(0) is None
        assert parse_positive(-5) is None
        assert parse_positive("7") == 7

    def test_pick_skips_empty(self):
        assert pick({"a": "", "b": None, "c": 3}, "a", "b", "c") == 3
        assert pick({}, "a") is None

    def test_str_list(self):
        assert str_list(["a", None, 1]) == ["a", "1"]
        assert str_list("a") == []


# ──────────────────────────────────────────────────────────────
# PAYLOAD PARSING
# ──────────────────────────────────────────────────────────────

class TestParsePropertyPayload:
    def test_assessment(self):
        facts = parse_property_payload(SERVICE_PAYLOAD)
        assert facts.has_assessment
        assert facts.address == "5100 Joyce St"
        assert facts.lot_size_sqft == 6820
        assert facts.assessed_value == 1_850_000
        assert facts.zoning == "RS-1"
        assert facts.latitude == 49.2384

    def test_comparables(self):
        facts = parse_property_payload(SERVICE_PAYLOAD)
        assert len(facts.comparables) == 2
        assert facts.comparables[0].sold_price == 1_900_000
        assert facts.comparables[0].days_on_market == 12
        assert facts.comparables[1].list_price == 2_050_000
        assert facts.comparables[1].sqft == 2400
        assert facts.comparables[1].sold_price is None

    def test_market_analysis(self):
        ma = parse_property_payload(SERVICE_PAYLOAD).market_analysis
        assert ma.price_trend == "rising"
        assert ma.avg_days_on_market == 18
        assert ma.price_range_low == 1_700_000
        assert ma.price_range_high == 2_300_000

    def test_unknown_trend_is_stable(self):
        ma = parse_property_payload({"marketAnalysis": {"marketTrend": "sideways"}}).market_analysis
        assert ma.price_trend == "stable"
        assert ma.avg_days_on_market == 30

    def test_snake_case_keys(self):
        facts = parse_property_payload({
            "assessment": {"lot_size_sqft": 5000, "assessed_value": 900_000, "zone_code": "RT-1"},
            "comparables": [{"sold_price": 1_000_000, "sqft": 2000, "days_on_market": 20}],
        })
        assert facts.lot_size_sqft == 5000
        assert facts.assessed_value == 900_000
        assert facts.zoning == "RT-1"
        assert facts.comparables[0].sold_price == 1_000_000
        assert facts.market_analysis is None

    def test_garbage_values_become_none(self):
        facts = parse_property_payload({
            "bcAssessment": {"lotSize": "unknown", "totalAssessedValue": -1, "zoning": "  "},
        })
        assert facts.has_assessment
        assert facts.lot_size_sqft is None
        assert facts.assessed_value is None
        assert facts.zoning is None

    def test_out_of_range_coordinates_dropped(self):
        facts = parse_property_payload({"bcAssessment": {"latitude": 249.2, "longitude": -123.0}})
        assert facts.latitude is None
        assert facts.longitude is None

    def test_half_coordinate_dropped(self):
        facts = parse_property_payload({"bcAssessment": {"latitude": 49.2, "longitude": "n/a"}})
        assert facts.latitude is None
        assert facts.longitude is None

    def test_not_a_dict(self):
        facts = parse_property_payload(["not", "a", "dict"])
        assert not facts.has_assessment
        assert facts.comparables == []

    def test_none(self):
        facts = parse_property_payload(None)
        assert facts.lot_size_sqft is None
        assert facts.market_analysis is None

    def test_malformed_sections(self):
        facts = parse_property_payload({"bcAssessment": "x", "mlsComparables": {"a": 1}})
        assert not facts.has_assessment
        assert facts.comparables == []


# ──────────────────────────────────────────────────────────────
# HTTP PROVIDER
# ──────────────────────────────────────────────────────────────

class TestHttpPropertyProvider:
    @pytest.mark.asyncio
    async def test_unconfigured_returns_none(self):
        provider = HttpPropertyProvider(base_url="", api_key="")
        assert await provider.get_property_data("1 Main St", "Vancouver") is None

    @pytest.mark.asyncio
    async def test_returns_json_with_auth_header(self):
        with patch("lotwise.services.property_data.httpx.AsyncClient") as mock_client_class:
            mock_client, _ = _mock_client_class(mock_client_class, payload=SERVICE_PAYLOAD)

            provider = HttpPropertyProvider(
                base_url="https://property.example/api", api_key="secret", timeout=5,
            )
            result = await provider.get_property_data("5100 Joyce St", "Vancouver")

            assert result == SERVICE_PAYLOAD
            _, kwargs = mock_client.get.call_args
            assert kwargs["params"] == {"address": "5100 Joyce St", "city": "Vancouver"}
            assert kwargs["headers"] == {"Authorization": "Bearer secret"}

    @pytest.mark.asyncio
    async def test_not_found_returns_none(self):
        with patch("lotwise.services.property_data.httpx.AsyncClient") as mock_client_class:
            _mock_client_class(mock_client_class, status_code=404)
            provider = HttpPropertyProvider(base_url="https://property.example/api", api_key="")
            assert await provider.get_property_data("1 Main St", "Vancouver") is None

    @pytest.mark.asyncio
    async def test_non_dict_json_returns_none(self):
        with patch("lotwise.services.property_data.httpx.AsyncClient") as mock_client_class:
            _mock_client_class(mock_client_class, payload=["unexpected"])
            provider = HttpPropertyProvider(base_url="https://property.example/api", api_key="")
            assert await provider.get_property_data("1 Main St", "Vancouver") is None

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        import httpx

        with patch("lotwise.services.property_data.httpx.AsyncClient") as mock_client_class:
            _, mock_resp = _mock_client_class(mock_client_class, status_code=500)
            mock_resp.raise_for_status.side_effect = httpx.HTTPStatusError(
                "server error", request=MagicMock(), response=MagicMock(),
            )
            provider = HttpPropertyProvider(base_url="https://property.example/api", api_key="")
            with pytest.raises(httpx.HTTPStatusError):
                await provider.get_property_data("1 Main St", "Vancouver")
