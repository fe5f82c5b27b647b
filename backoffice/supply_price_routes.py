# backoffice/supply_price_routes.py
# Supply price maintenance: download template, upload prices

from __future__ import annotations

import csv as csv_mod
import io
import uuid
from datetime import datetime

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from backoffice.auth import current_user_id
from backoffice.db import SessionLocal
from backoffice.models import Supply

router = APIRouter(prefix="/supplies", tags=["supplies"])

NAME_ALIASES = ["supply", "supply_name", "material", "item"]
PRICE_ALIASES = ["cost", "unit_price", "price_per_unit", "unit_cost"]


# ---------------------------------------------------------------------------
# Download: price template (pre-filled with the user's supplies)
# ---------------------------------------------------------------------------

@router.get("/price-template")
def download_price_template(user_id: uuid.UUID = Depends(current_user_id)):
    """CSV with name, unit, vendor, price; price is blank for unpriced supplies."""
    db = SessionLocal()
    try:
        rows = db.query(Supply).filter(Supply.user_id == user_id).order_by(Supply.name.asc()).all()

        output = io.StringIO()
        writer = csv_mod.writer(output)
        writer.writerow(["name", "unit", "vendor", "price"])
        for s in rows:
            writer.writerow([s.name, s.unit, s.vendor or "", "" if s.price is None else s.price])

        output.seek(0)
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=supply_price_template.csv"},
        )
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Upload: prices
# ---------------------------------------------------------------------------

def _read_sheet(content: bytes) -> pd.DataFrame:
    try:
        return pd.read_csv(io.BytesIO(content))
    except Exception:
        try:
            return pd.read_excel(io.BytesIO(content))
        except Exception:
            raise HTTPException(400, "Could not parse file. Upload CSV or Excel.")


def _rename_first(df: pd.DataFrame, target: str, aliases: list[str]) -> pd.DataFrame:
    if target in df.columns:
        return df
    for alt in aliases:
        if alt in df.columns:
            return df.rename(columns={alt: target})
    raise HTTPException(400, f"Missing column: {target}")


@router.post("/price-upload")
def upload_supply_prices(
    file: UploadFile = File(...),
    user_id: uuid.UUID = Depends(current_user_id),
):
    """Updates prices of existing supplies matched by name (case-insensitive)."""
    db = SessionLocal()
    try:
        content = file.file.read()
        if not content:
            raise HTTPException(400, "Empty file")

        df = _read_sheet(content)
        df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
        df = _rename_first(df, "name", NAME_ALIASES)
        df = _rename_first(df, "price", PRICE_ALIASES)

        df = df.dropna(subset=["name", "price"])
        df["price"] = pd.to_numeric(df["price"], errors="coerce")
        df = df.dropna(subset=["price"])
        df = df[df["price"] >= 0]

        if df.empty:
            return {"ok": True, "updated": 0, "unmatched": [], "message": "No valid prices found"}

        supplies = {}
        for s in db.query(Supply).filter(Supply.user_id == user_id).all():
            supplies.setdefault(s.name.strip().lower(), []).append(s)

        updated = 0
        unmatched = []
        for _, r in df.iterrows():
            name = str(r["name"]).strip()
            matches = supplies.get(name.lower())
            if not matches:
                unmatched.append(name)
                continue
            for s in matches:
                s.price = float(r["price"])
                s.updated_at = datetime.utcnow()
                updated += 1

        db.commit()
        return {"ok": True, "updated": updated, "unmatched": unmatched}

    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise HTTPException(500, f"Supply price upload failed: {e}")
    finally:
        db.close()
