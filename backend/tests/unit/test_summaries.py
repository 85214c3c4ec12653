"""Unit tests for cost formatting and the fallback reply synthesizer."""

import pytest

from homebase.agents.summaries import (
    HOMEOWNER_GENERIC_REPLY,
    PROVIDER_GENERIC_REPLY,
    fmt_dollars,
    format_cost_range,
    synthesize_reply,
)
from homebase.models.chat import ToolResult, UIToolResult, UserRole

MIN_REPLY_LENGTH = 10


def _service_request_result(**data_overrides) -> ToolResult:
    data = {
        "request_id": "req-1",
        "summary": "AC blowing warm air, likely a refrigerant leak",
        "severity": "moderate",
        "cost_range": "$150-$250",
        "matched_count": 2,
        "providers": [
            {"org_id": "o1", "name": "Cool Air Co", "trust_score": 8.7},
            {"org_id": "o2", "name": "Polar HVAC", "trust_score": 5.0},
        ],
    }
    data.update(data_overrides)
    return ToolResult(
        call_id="c1",
        name="create_service_request",
        payload=data,
        ui=UIToolResult(type="service_request", data=data),
    )


def _property_result() -> ToolResult:
    data = {
        "address_std": "12 Oak St, Austin, TX 78701",
        "zip": "78701",
        "home": {"beds": 3, "baths": 2.5, "sqft": 1850},
    }
    return ToolResult(call_id="c1", name="lookup_home", payload=data, ui=UIToolResult(type="property", data=data))


class TestFormatCostRange:
    def test_range(self):
        assert format_cost_range(150, 250) == "$150-$250"

    def test_thousands_separator(self):
        assert format_cost_range(1500, 12000) == "$1,500-$12,000"

    def test_equal_bounds_collapse(self):
        assert format_cost_range(300, 300) == "$300"

    def test_open_bounds(self):
        assert format_cost_range(200, None) == "from $200"
        assert format_cost_range(None, 900) == "up to $900"
        assert format_cost_range(None, None) == "price to be confirmed"

    def test_fmt_dollars_rounds(self):
        assert fmt_dollars(149.6) == "$150"


class TestSynthesizeServiceRequest:
    def test_contains_summary_severity_cost_and_providers(self):
        reply = synthesize_reply(_service_request_result(), UserRole.HOMEOWNER)
        assert "AC blowing warm air" in reply
        assert "moderate" in reply
        assert "$150-$250" in reply
        assert "Cool Air Co" in reply and "Polar HVAC" in reply
        assert reply.rstrip().endswith("?")

    def test_no_providers(self):
        reply = synthesize_reply(
            _service_request_result(providers=[], matched_count=0), UserRole.HOMEOWNER
        )
        assert "$150-$250" in reply
        assert "Matched providers" not in reply

    def test_at_most_three_provider_names(self):
        providers = [{"org_id": f"o{i}", "name": f"Pro {i}"} for i in range(5)]
        reply = synthesize_reply(_service_request_result(providers=providers), UserRole.HOMEOWNER)
        assert "Pro 2" in reply
        assert "Pro 3" not in reply


class TestSynthesizeProperty:
    def test_acknowledges_home_and_asks_for_service(self):
        reply = synthesize_reply(_property_result(), UserRole.HOMEOWNER)
        assert "12 Oak St, Austin, TX 78701" in reply
        assert "3 bd / 2.5 ba" in reply
        assert "1,850 sqft" in reply
        assert "What service do you need" in reply


class TestSynthesizeGeneric:
    @pytest.mark.parametrize(
        "role,expected",
        [
            (UserRole.HOMEOWNER, HOMEOWNER_GENERIC_REPLY),
            ("homeowner", HOMEOWNER_GENERIC_REPLY),
            (UserRole.PROVIDER, PROVIDER_GENERIC_REPLY),
            ("provider", PROVIDER_GENERIC_REPLY),
        ],
    )
    def test_no_result(self, role, expected):
        assert synthesize_reply(None, role) == expected

    def test_failed_result_gets_generic_prompt(self):
        failed = ToolResult.failure("c1", "create_service_request", "Could not create the service request")
        assert synthesize_reply(failed, UserRole.HOMEOWNER) == HOMEOWNER_GENERIC_REPLY

    def test_model_only_payload_gets_generic_prompt(self):
        result = ToolResult(call_id="c1", name="check_schedule", payload={"jobs": []})
        assert synthesize_reply(result, UserRole.PROVIDER) == PROVIDER_GENERIC_REPLY


class TestSynthesizedReplyLength:
    @pytest.mark.parametrize(
        "result",
        [None, _service_request_result(summary=""), _property_result()],
    )
    @pytest.mark.parametrize("role", [UserRole.HOMEOWNER, UserRole.PROVIDER])
    def test_reply_is_never_too_short(self, result, role):
        assert len(synthesize_reply(result, role).strip()) >= MIN_REPLY_LENGTH
