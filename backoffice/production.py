# backoffice/production.py
# Batch cost calculation (COGS) from a product's bill of materials.

from __future__ import annotations

import json
import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from backoffice.errors import (
    InvalidInput,
    InvalidTransition,
    NoRecipeConfigured,
    RecordNotFound,
)
from backoffice.models import Product, ProductionBatch, ProductSupply, Supply

logger = logging.getLogger(__name__)

BATCH_STATUSES = ("planned", "in_progress", "completed")

# the only legal moves; nothing goes backward or skips a step
NEXT_STATUS = {
    "planned": "in_progress",
    "in_progress": "completed",
}


LINE_NUMBER_FIELDS = ("unit_amount", "total_needed", "price_per_unit", "total_cost")


def _check_batch_size(batch_size) -> int:
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
        raise InvalidInput("Please select a product and enter a valid batch size.")
    return batch_size


def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _check_lines(lines) -> list[dict]:
    # total_cost is required; the other numeric fields may be missing or null
    for i, line in enumerate(lines):
        if not isinstance(line, dict):
            raise InvalidInput(f"Supply line {i} is not an object")
        if not _is_number(line.get("total_cost")):
            raise InvalidInput(f"Supply line {i} has an invalid total_cost")
        bad = [k for k in LINE_NUMBER_FIELDS if line.get(k) is not None and not _is_number(line[k])]
        if bad:
            raise InvalidInput(f"Supply line {i} has non-numeric field(s): {', '.join(bad)}")
    return lines


def _get_product(db: Session, product_id: uuid.UUID, user_id: Optional[uuid.UUID] = None) -> Product:
    q = db.query(Product).filter(Product.id == product_id)
    if user_id is not None:
        q = q.filter(Product.user_id == user_id)
    product = q.first()
    if not product:
        raise RecordNotFound(f"Product not found: {product_id}")
    return product


def calculate_batch(
    db: Session,
    product_id: uuid.UUID,
    batch_size: int,
    user_id: Optional[uuid.UUID] = None,
) -> list[dict]:
    """
    Scale the per-unit recipe to batch_size. Unpriced supplies cost 0 but
    still report total_needed. Nothing is persisted here.
    """
    batch_size = _check_batch_size(batch_size)
    if user_id is not None:
        _get_product(db, product_id, user_id)

    rows = (
        db.query(ProductSupply)
        .options(joinedload(ProductSupply.supply))
        .filter(ProductSupply.product_id == product_id)
        .order_by(ProductSupply.created_at.asc())
        .all()
    )
    if not rows:
        raise NoRecipeConfigured(
            "This product doesn't have any supplies configured. Please add supplies to the product first."
        )

    lines = []
    for ps in rows:
        price = ps.supply.price or 0
        lines.append({
            "supply_id": str(ps.supply_id),
            "supply_name": ps.supply.name,
            "unit_amount": ps.quantity,
            "unit": ps.unit,
            "total_needed": ps.quantity * batch_size,
            "price_per_unit": price,
            "total_cost": price * ps.quantity * batch_size,
        })
    return lines


def total_cost(lines: list[dict]) -> float:
    return sum((line.get("total_cost") or 0) for line in lines)


def cost_per_unit(lines: list[dict], batch_size: int) -> float:
    return total_cost(lines) / _check_batch_size(batch_size)


def save_batch(
    db: Session,
    user_id: uuid.UUID,
    product_id: uuid.UUID,
    batch_size: int,
    supply_lines: list[dict],
) -> ProductionBatch:
    """Stores the lines verbatim; the snapshot is the batch's cost of record."""
    batch_size = _check_batch_size(batch_size)
    if not supply_lines:
        raise NoRecipeConfigured("Cannot save a batch without calculated supplies")
    _check_lines(supply_lines)

    product = _get_product(db, product_id, user_id)

    batch = ProductionBatch(
        user_id=user_id,
        product_id=product_id,
        batch_size=batch_size,
        calculated_supplies=json.dumps(supply_lines),
        status="planned",
    )
    db.add(batch)
    db.commit()
    db.refresh(batch)
    logger.info("Saved production batch %s (%s x %d)", batch.id, product.name, batch_size)
    return batch


def advance_status(db: Session, batch_id: uuid.UUID, next_status: str, user_id: Optional[uuid.UUID] = None) -> ProductionBatch:
    q = db.query(ProductionBatch).filter(ProductionBatch.id == batch_id)
    if user_id is not None:
        q = q.filter(ProductionBatch.user_id == user_id)
    batch = q.first()
    if not batch:
        raise RecordNotFound(f"Production batch not found: {batch_id}")

    if NEXT_STATUS.get(batch.status) != next_status:
        raise InvalidTransition(f"Cannot move batch from {batch.status} to {next_status}")

    batch.status = next_status
    db.commit()
    db.refresh(batch)
    return batch


def batch_snapshot(batch: ProductionBatch) -> list[dict]:
    return json.loads(batch.calculated_supplies or "[]")


def batch_summary(batch: ProductionBatch) -> dict:
    # totals come from the stored snapshot, never from current supply prices
    lines = batch_snapshot(batch)
    total = total_cost(lines)
    return {
        "id": str(batch.id),
        "product_id": str(batch.product_id),
        "product_name": batch.product.name if batch.product else None,
        "batch_size": batch.batch_size,
        "status": batch.status,
        "calculated_supplies": lines,
        "total_cost": round(total, 2),
        "cost_per_unit": round(total / batch.batch_size, 2) if batch.batch_size else None,
        "created_at": batch.created_at.isoformat() if batch.created_at else None,
    }


def list_batches(db: Session, user_id: uuid.UUID) -> list[dict]:
    rows = (
        db.query(ProductionBatch)
        .options(joinedload(ProductionBatch.product))
        .filter(ProductionBatch.user_id == user_id)
        .order_by(ProductionBatch.created_at.desc())
        .all()
    )
    return [batch_summary(b) for b in rows]


# ---------------------------------------------------------------------------
# Bill of materials
# ---------------------------------------------------------------------------

def add_bom_line(
    db: Session,
    product_id: uuid.UUID,
    supply_id: uuid.UUID,
    quantity: float,
    unit: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
) -> ProductSupply:
    if quantity is None or quantity <= 0:
        raise InvalidInput("Quantity must be greater than 0")

    _get_product(db, product_id, user_id)
    q = db.query(Supply).filter(Supply.id == supply_id)
    if user_id is not None:
        q = q.filter(Supply.user_id == user_id)
    supply = q.first()
    if not supply:
        raise RecordNotFound(f"Supply not found: {supply_id}")

    dup = (
        db.query(ProductSupply)
        .filter(ProductSupply.product_id == product_id, ProductSupply.supply_id == supply_id)
        .first()
    )
    if dup:
        raise InvalidInput(f"{supply.name} is already part of this product's recipe")

    line = ProductSupply(product_id=product_id, supply_id=supply_id, quantity=quantity, unit=unit or supply.unit)
    db.add(line)
    db.commit()
    db.refresh(line)
    return line
