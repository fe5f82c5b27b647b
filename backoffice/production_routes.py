# backoffice/production_routes.py
# Production planner: batch calculation, saved batches, recipes.

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from backoffice.auth import current_user_id
from backoffice.db import SessionLocal
from backoffice.errors import BackofficeError
from backoffice.production import (
    add_bom_line,
    advance_status,
    batch_summary,
    calculate_batch,
    cost_per_unit,
    list_batches,
    save_batch,
    total_cost,
)

router = APIRouter(tags=["production"])


class CalculateRequest(BaseModel):
    product_id: uuid.UUID
    batch_size: int


class BatchLine(BaseModel):
    supply_id: Optional[str] = None
    supply_name: Optional[str] = None
    unit: Optional[str] = None
    unit_amount: Optional[float] = None
    total_needed: Optional[float] = None
    price_per_unit: Optional[float] = None
    total_cost: float


class SaveBatchRequest(BaseModel):
    product_id: uuid.UUID
    batch_size: int
    lines: list[BatchLine]


class StatusRequest(BaseModel):
    status: str


class BomLineRequest(BaseModel):
    supply_id: uuid.UUID
    quantity: float
    unit: Optional[str] = None


@router.post("/production/calculate")
def production_calculate(payload: CalculateRequest, user_id: uuid.UUID = Depends(current_user_id)):
    db = SessionLocal()
    try:
        lines = calculate_batch(db, payload.product_id, payload.batch_size, user_id=user_id)
        return {
            "lines": lines,
            "total_cost": round(total_cost(lines), 2),
            "cost_per_unit": round(cost_per_unit(lines, payload.batch_size), 2),
        }
    except BackofficeError as e:
        raise HTTPException(e.status_code, str(e))
    finally:
        db.close()


@router.post("/production/batches")
def production_save_batch(payload: SaveBatchRequest, user_id: uuid.UUID = Depends(current_user_id)):
    db = SessionLocal()
    try:
        batch = save_batch(
            db,
            user_id,
            payload.product_id,
            payload.batch_size,
            [line.model_dump() for line in payload.lines],
        )
        return batch_summary(batch)
    except BackofficeError as e:
        db.rollback()
        raise HTTPException(e.status_code, str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(500, f"Saving batch failed: {e}")
    finally:
        db.close()


@router.get("/production/batches")
def production_list_batches(user_id: uuid.UUID = Depends(current_user_id)):
    db = SessionLocal()
    try:
        return list_batches(db, user_id)
    finally:
        db.close()


@router.post("/production/batches/{batch_id}/status")
def production_batch_status(
    batch_id: uuid.UUID,
    payload: StatusRequest,
    user_id: uuid.UUID = Depends(current_user_id),
):
    db = SessionLocal()
    try:
        batch = advance_status(db, batch_id, payload.status, user_id=user_id)
        return batch_summary(batch)
    except BackofficeError as e:
        db.rollback()
        raise HTTPException(e.status_code, str(e))
    finally:
        db.close()


@router.post("/products/{product_id}/supplies")
def product_add_supply(
    product_id: uuid.UUID,
    payload: BomLineRequest,
    user_id: uuid.UUID = Depends(current_user_id),
):
    db = SessionLocal()
    try:
        line = add_bom_line(db, product_id, payload.supply_id, payload.quantity, payload.unit, user_id=user_id)
        return {
            "id": str(line.id),
            "product_id": str(line.product_id),
            "supply_id": str(line.supply_id),
            "quantity": line.quantity,
            "unit": line.unit,
        }
    except BackofficeError as e:
        db.rollback()
        raise HTTPException(e.status_code, str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(500, f"Adding supply failed: {e}")
    finally:
        db.close()
