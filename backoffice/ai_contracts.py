# backoffice/ai_contracts.py
# Prompt construction and response parsing for the two language-model calls.
#
# Model output is not guaranteed to be JSON. Listing analysis degrades to
# {"error", "rawResponse"}; business plans degrade to a fallback plan of the
# same shape so callers always get a tasks list.

from __future__ import annotations

import copy
import json
import logging
import re
from typing import Any, Optional

from backoffice.errors import AIResponseParseError, InvalidInput

logger = logging.getLogger(__name__)

ANALYSIS_KEYS = (
    "titleAnalysis",
    "seoAnalysis",
    "pricingAnalysis",
    "descriptionAnalysis",
    "marketResearch",
    "overallScore",
    "priorityActions",
)

PLAN_KEYS = (
    "planSummary",
    "timelineBreakdown",
    "marketingStrategy",
    "operationalConsiderations",
    "risksConstraints",
    "keyMetrics",
    "tasks",
)

PLAN_PLACEHOLDERS = ("title", "goal", "timeline", "budget", "target_audience", "description")

ANALYSIS_SYSTEM_PROMPT = "You are an expert Etsy SEO consultant and marketplace optimization specialist."
PLAN_SYSTEM_PROMPT = (
    "You are a business planning expert. Always respond with valid JSON containing the complete plan "
    "structure with planSummary, timelineBreakdown, marketingStrategy, operationalConsiderations, "
    "risksConstraints, keyMetrics, and tasks array."
)

ANALYSIS_PROMPT = """
You are an Etsy SEO and marketplace optimization expert. Analyze this Etsy listing and provide detailed recommendations:

Listing Data:
- Title: {title}
- Description: {description}
- Price: ${price}
- Tags/Keywords: {tags}

Please analyze the following aspects and provide specific, actionable recommendations:

1. TITLE OPTIMIZATION: current title effectiveness (1-10 score), keyword issues, 3 alternative titles.
2. SEO & KEYWORDS: keyword density, missing high-value keywords, 13 recommended tags.
3. PRICING STRATEGY: competitiveness, suggested adjustment, value proposition.
4. DESCRIPTION OPTIMIZATION: readability, call-to-action, keyword integration, suggested rewrite.
5. MARKET RESEARCH: target audience, competitor positioning, category trends.

Provide your response in JSON format with the following structure:
{{
  "titleAnalysis": {{"score": number, "issues": string[], "suggestions": string[]}},
  "seoAnalysis": {{"keywordDensity": string, "missingKeywords": string[], "recommendedTags": string[]}},
  "pricingAnalysis": {{"competitiveness": string, "suggestedPrice": number, "reasoning": string}},
  "descriptionAnalysis": {{"readabilityScore": number, "improvements": string[], "suggestedDescription": string}},
  "marketResearch": {{"targetAudience": string, "competitorInsights": string, "trends": string[]}},
  "overallScore": number,
  "priorityActions": string[]
}}
"""

DEFAULT_PLAN_PROMPT = """You are a business planning expert for a {context}.

Based on the following information, create a detailed, actionable business plan:

Plan Details:
- Title: {title}
- Main Goal: {goal}
- Timeline: {timeline}
- Budget: {budget}
- Target Audience: {target_audience}
- Description: {description}

Please return a JSON object with the following structure:
{{
  "planSummary": "2-3 sentence overview",
  "timelineBreakdown": "Week-by-week or phase breakdown",
  "marketingStrategy": "Marketing approach details",
  "operationalConsiderations": "Operational planning details",
  "risksConstraints": "Potential risks and constraints",
  "keyMetrics": "Success metrics to track",
  "tasks": [
    {{"title": "Task name", "description": "Detailed task description"}}
  ]
}}"""

DEFAULT_PLAN_FALLBACK = {
    "planSummary": "This plan aims to achieve your business goals through strategic planning and execution.",
    "timelineBreakdown": "Please regenerate for a detailed timeline based on your specific inputs.",
    "marketingStrategy": "Marketing approach will be tailored to your target audience and budget.",
    "operationalConsiderations": "Operational planning will focus on efficiency and resource optimization.",
    "risksConstraints": "Consider potential bottlenecks and resource limitations.",
    "keyMetrics": "Track progress through relevant KPIs and success metrics.",
    "tasks": [
        {
            "title": "Market Research and Analysis",
            "description": "Research your target audience, competitors and pricing, and identify your unique value proposition.",
        },
        {
            "title": "Business Model Validation",
            "description": "Test key assumptions with small product runs and gather feedback from potential customers.",
        },
        {
            "title": "Financial Planning and Budgeting",
            "description": "Project startup costs, operating expenses and revenue, and work out your break-even point.",
        },
        {
            "title": "Brand Development and Positioning",
            "description": "Settle on logo, messaging and visuals, and decide how you differ from competitors.",
        },
        {
            "title": "Marketing Strategy Development",
            "description": "Plan social, content and marketplace promotion that fits within your budget.",
        },
        {
            "title": "Operational Framework Setup",
            "description": "Define supply ordering, production batches, quality checks and fulfilment workflow.",
        },
        {
            "title": "Legal and Compliance Requirements",
            "description": "Complete registration, permits, insurance and product labelling requirements.",
        },
        {
            "title": "Launch Preparation and Execution",
            "description": "Prepare inventory, run a soft launch, then execute the launch campaign.",
        },
    ],
}

_FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```", re.DOTALL)


# ---------------------------------------------------------------------------
# Listing analysis
# ---------------------------------------------------------------------------

def build_analysis_prompt(listing: dict) -> str:
    tags = listing.get("tags")
    if isinstance(tags, (list, tuple)):
        tags = ", ".join(str(t) for t in tags)
    return ANALYSIS_PROMPT.format(
        title=listing.get("title") or "",
        description=listing.get("description") or "",
        price=listing.get("price") if listing.get("price") is not None else "",
        tags=tags or "Not provided",
    )


def parse_listing_analysis(text: Optional[str]) -> dict:
    """Never raises. Non-JSON output is returned as {"error", "rawResponse"}."""
    try:
        analysis = json.loads(text or "")
        if not isinstance(analysis, dict):
            raise AIResponseParseError("Analysis is not a JSON object")
    except (ValueError, AIResponseParseError) as e:
        logger.warning("Listing analysis was not valid JSON: %s", e)
        return {"error": "Failed to parse AI response", "rawResponse": text}
    return analysis


# ---------------------------------------------------------------------------
# Business plans
# ---------------------------------------------------------------------------

def validate_plan_form(form: dict) -> dict:
    missing = [k for k in ("title", "goal") if not str(form.get(k) or "").strip()]
    if missing:
        raise InvalidInput(f"Missing required field(s): {', '.join(missing)}")
    return form


def render_plan_prompt(template: str, form: dict) -> str:
    """Replace each {placeholder} with the form value. Other braces are left alone."""
    out = template
    for key in PLAN_PLACEHOLDERS:
        value = form.get(key)
        out = out.replace("{" + key + "}", "" if value is None else str(value))
    return out


def build_plan_prompt(form: dict, custom_prompt: Optional[str] = None, context: Optional[str] = None) -> str:
    if custom_prompt:
        return render_plan_prompt(custom_prompt, form)
    values = {k: ("" if form.get(k) is None else form.get(k)) for k in PLAN_PLACEHOLDERS}
    return DEFAULT_PLAN_PROMPT.format(context=context or "small business", **values)


def strip_code_fence(text: str) -> str:
    # first fenced block wins, prose around it is dropped
    m = _FENCE_RE.search(text or "")
    return m.group(1).strip() if m else (text or "").strip()


def _load_plan(text: Optional[str]) -> dict:
    try:
        plan = json.loads(strip_code_fence(text or ""))
    except ValueError as e:
        raise AIResponseParseError(f"Plan is not valid JSON: {e}") from e

    if not isinstance(plan, dict):
        raise AIResponseParseError("Plan is not a JSON object")
    tasks = plan.get("tasks")
    if not isinstance(tasks, list):
        raise AIResponseParseError("Plan has no tasks array")
    for i, task in enumerate(tasks):
        if not isinstance(task, dict) or not isinstance(task.get("title"), str) or not task["title"].strip():
            raise AIResponseParseError(f"Plan task {i} has no title")
    return plan


def parse_business_plan(text: Optional[str], fallback: Optional[dict[str, Any]] = None) -> dict:
    """Never raises. Returns the parsed plan or a copy of the fallback plan."""
    try:
        return _load_plan(text)
    except AIResponseParseError as e:
        logger.warning("JSON parsing failed, using fallback plan: %s", e)
        return copy.deepcopy(fallback if fallback is not None else DEFAULT_PLAN_FALLBACK)
