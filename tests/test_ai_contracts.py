"""Prompt construction and AI response parsing tests."""

import json
from unittest.mock import MagicMock

import pytest

from backoffice.ai_client import AIClient
from backoffice.ai_contracts import (
    DEFAULT_PLAN_FALLBACK,
    PLAN_KEYS,
    build_analysis_prompt,
    build_plan_prompt,
    parse_business_plan,
    parse_listing_analysis,
    render_plan_prompt,
    strip_code_fence,
    validate_plan_form,
)
from backoffice.errors import AIRequestError, InvalidInput
from fakes import FakeResponse

FORM = {
    "title": "Holiday Launch",
    "goal": "Sell 300 candles",
    "timeline": "8 weeks",
    "budget": "$500",
    "target_audience": "Gift shoppers",
    "description": "Three new winter scents",
}

PLAN = {
    "planSummary": "Launch three scents.",
    "timelineBreakdown": "Weeks 1-8",
    "marketingStrategy": "Instagram + Etsy ads",
    "operationalConsiderations": "Batch early",
    "risksConstraints": "Wax supply",
    "keyMetrics": "Units sold",
    "tasks": [{"title": "Order wax", "description": "Order 50 lb of soy wax"}],
}


class TestListingAnalysis:

    def test_prompt_includes_listing(self):
        prompt = build_analysis_prompt({"title": "Fig Candle", "description": "Warm fig", "price": 24.99, "tags": ["fig", "soy"]})
        assert "- Title: Fig Candle" in prompt
        assert "- Price: $24.99" in prompt
        assert "- Tags/Keywords: fig, soy" in prompt
        assert '"priorityActions": string[]' in prompt

    def test_prompt_without_tags(self):
        prompt = build_analysis_prompt({"title": "Fig Candle", "description": "", "price": 10})
        assert "- Tags/Keywords: Not provided" in prompt

    def test_valid_json(self):
        payload = {"overallScore": 7, "priorityActions": ["Shorten title"]}
        assert parse_listing_analysis(json.dumps(payload)) == payload

    def test_non_json_returns_error_object(self):
        result = parse_listing_analysis("Here is my analysis: great listing!")
        assert result == {"error": "Failed to parse AI response", "rawResponse": "Here is my analysis: great listing!"}

    def test_json_array_is_not_an_analysis(self):
        assert parse_listing_analysis("[1, 2]")["error"] == "Failed to parse AI response"


class TestPlanPrompt:

    def test_custom_template_placeholders(self):
        template = "Plan {title}: {goal} in {timeline} for {budget} aimed at {target_audience}. {description}. Again: {title}"
        out = render_plan_prompt(template, FORM)
        assert out == (
            "Plan Holiday Launch: Sell 300 candles in 8 weeks for $500 aimed at Gift shoppers. "
            "Three new winter scents. Again: Holiday Launch"
        )

    def test_missing_fields_become_empty(self):
        assert render_plan_prompt("[{budget}]", {"title": "x"}) == "[]"

    def test_default_prompt_uses_context(self):
        prompt = build_plan_prompt(FORM, context="candle business")
        assert prompt.startswith("You are a business planning expert for a candle business.")
        assert "- Main Goal: Sell 300 candles" in prompt
        assert '"tasks": [' in prompt
        assert "{{" not in prompt

    def test_default_context(self):
        assert "for a small business." in build_plan_prompt(FORM)

    def test_custom_prompt_wins(self):
        assert build_plan_prompt(FORM, custom_prompt="Do {title}", context="ignored") == "Do Holiday Launch"

    def test_required_fields(self):
        with pytest.raises(InvalidInput):
            validate_plan_form({"title": "x", "goal": "  "})
        assert validate_plan_form(FORM) is FORM


class TestPlanParsing:

    def test_plain_json(self):
        assert parse_business_plan(json.dumps(PLAN)) == PLAN

    def test_code_fenced_json(self):
        fenced = "```json\n" + json.dumps(PLAN, indent=2) + "\n```"
        assert parse_business_plan(fenced) == PLAN

    def test_bare_fence(self):
        assert strip_code_fence("```\n{\"a\": 1}\n```") == '{"a": 1}'

    def test_prose_before_fence(self):
        reply = "Here is your plan:\n```json\n" + json.dumps(PLAN) + "\n```\nGood luck!"
        assert parse_business_plan(reply) == PLAN

    @pytest.mark.parametrize("tasks", [
        ["Buy wax", "Pour candles"],
        [{"description": "No title here"}],
        [{"title": "  ", "description": "Blank title"}],
        [{"title": "Order wax", "description": "ok"}, None],
    ])
    def test_malformed_tasks_fall_back(self, tasks):
        assert parse_business_plan(json.dumps(dict(PLAN, tasks=tasks))) == DEFAULT_PLAN_FALLBACK

    def test_empty_task_list_is_kept(self):
        assert parse_business_plan(json.dumps(dict(PLAN, tasks=[])))["tasks"] == []

    def test_non_json_falls_back(self):
        plan = parse_business_plan("Sorry, I can't help with that.")
        assert set(plan) == set(PLAN_KEYS)
        assert len(plan["tasks"]) > 0
        assert all(t["title"] and t["description"] for t in plan["tasks"])

    @pytest.mark.parametrize("text", [
        json.dumps({k: v for k, v in PLAN.items() if k != "tasks"}),
        json.dumps(dict(PLAN, tasks="Order wax")),
        "null",
        "",
        None,
    ])
    def test_missing_tasks_array_falls_back(self, text):
        assert parse_business_plan(text) == DEFAULT_PLAN_FALLBACK

    def test_fallback_is_a_copy(self):
        plan = parse_business_plan("nope")
        plan["tasks"].clear()
        assert len(DEFAULT_PLAN_FALLBACK["tasks"]) == 8

    def test_pluggable_fallback(self):
        custom = {"planSummary": "Regenerate", "tasks": [{"title": "Retry", "description": "Try again"}]}
        assert parse_business_plan("oops", fallback=custom) == custom


class TestAIClient:

    def test_returns_message_content(self):
        session = MagicMock()
        session.post.return_value = FakeResponse(200, {"choices": [{"message": {"content": "{\"ok\": true}"}}]})
        client = AIClient(api_key="sk-test", model="gpt-4o-mini", session=session)

        assert client.complete("system", "user", max_tokens=2000) == '{"ok": true}'

        body = session.post.call_args.kwargs["json"]
        assert body["model"] == "gpt-4o-mini"
        assert body["messages"][0] == {"role": "system", "content": "system"}
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 2000
        assert session.post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"

    def test_http_error(self):
        session = MagicMock()
        session.post.return_value = FakeResponse(429, text="rate limited")
        client = AIClient(api_key="sk-test", session=session)

        with pytest.raises(AIRequestError):
            client.complete("system", "user")
