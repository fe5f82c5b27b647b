# backoffice/ai_routes.py
# Listing analysis, business-plan generation and plan saving.

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backoffice.ai_client import AIClient
from backoffice.ai_contracts import (
    ANALYSIS_SYSTEM_PROMPT,
    PLAN_SYSTEM_PROMPT,
    build_analysis_prompt,
    build_plan_prompt,
    parse_business_plan,
    parse_listing_analysis,
    validate_plan_form,
)
from backoffice.auth import current_user_id
from backoffice.db import SessionLocal
from backoffice.errors import BackofficeError
from backoffice.models import ListingOptimization
from backoffice.plans import save_plan

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ai"])

PLAN_MAX_TOKENS = 2000


def get_ai_client() -> AIClient:
    return AIClient()


class AnalyzeListingRequest(BaseModel):
    listing_data: dict[str, Any] = Field(..., alias="listingData")
    listing_id: Optional[uuid.UUID] = Field(None, alias="listingId")


class BusinessPlanRequest(BaseModel):
    form_data: dict[str, Any] = Field(..., alias="formData")
    context: Optional[str] = None
    custom_prompt: Optional[str] = Field(None, alias="customPrompt")


class SavePlanRequest(BaseModel):
    form_data: dict[str, Any] = Field(..., alias="formData")
    plan: dict[str, Any]
    selected_tasks: Optional[list[int]] = Field(None, alias="selectedTasks")


# ---------------------------------------------------------------------------
# Listing analysis
# ---------------------------------------------------------------------------

@router.post("/functions/analyze-listing")
def analyze_listing(
    payload: AnalyzeListingRequest,
    user_id: uuid.UUID = Depends(current_user_id),
    ai: AIClient = Depends(get_ai_client),
):
    db = SessionLocal()
    try:
        record = ListingOptimization(
            user_id=user_id,
            listing_id=payload.listing_id,
            original_data=json.dumps(payload.listing_data, default=str),
            status="analyzing",
        )
        db.add(record)
        db.commit()

        try:
            text = ai.complete(ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt(payload.listing_data))
        except BackofficeError as e:
            record.status = "error"
            db.commit()
            return JSONResponse({"error": str(e)}, status_code=e.status_code)

        analysis = parse_listing_analysis(text)
        record.analysis_results = json.dumps(analysis)
        record.status = "completed"
        db.commit()
        return {"analysis": analysis}
    except Exception as e:
        db.rollback()
        logger.exception("Error in analyze-listing")
        return JSONResponse({"error": str(e)}, status_code=500)
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Business plans
# ---------------------------------------------------------------------------

@router.post("/functions/generate-business-plan")
def generate_business_plan(
    payload: BusinessPlanRequest,
    user_id: uuid.UUID = Depends(current_user_id),
    ai: AIClient = Depends(get_ai_client),
):
    try:
        form = validate_plan_form(payload.form_data)
        prompt = build_plan_prompt(form, payload.custom_prompt, payload.context)
        text = ai.complete(PLAN_SYSTEM_PROMPT, prompt, max_tokens=PLAN_MAX_TOKENS)
    except BackofficeError as e:
        logger.error("Error in generate-business-plan: %s", e)
        return JSONResponse(
            {"error": "Failed to generate business plan", "details": str(e)},
            status_code=e.status_code,
        )

    logger.debug("Generated content: %s", text)
    return parse_business_plan(text)


@router.post("/plans")
def create_plan(payload: SavePlanRequest, user_id: uuid.UUID = Depends(current_user_id)):
    db = SessionLocal()
    try:
        plan = save_plan(db, user_id, payload.form_data, payload.plan, payload.selected_tasks)
        return {
            "id": str(plan.id),
            "title": plan.title,
            "status": plan.status,
            "tasks": [{"title": t.title, "order_index": t.order_index} for t in plan.tasks],
        }
    except BackofficeError as e:
        db.rollback()
        raise HTTPException(e.status_code, str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(500, f"Saving plan failed: {e}")
    finally:
        db.close()
