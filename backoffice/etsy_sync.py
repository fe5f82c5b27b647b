# backoffice/etsy_sync.py
# Pull active Etsy listings and reconcile them into fragrances + listings.

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from backoffice import config
from backoffice.errors import InvalidInput
from backoffice.etsy_client import EtsyClient
from backoffice.etsy_oauth import ensure_fresh_token
from backoffice.models import Fragrance, Listing, Platform, ShopConnection, SyncLog

logger = logging.getLogger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 10

# Etsy listing state -> local listing status
STATUS_MAP = {
    "active": "active",
    "draft": "draft",
    "sold_out": "sold",
}

LISTING_FIELDS = ("fragrance_id", "platform_id", "title", "description", "price", "quantity", "status", "url")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def price_from_money(money: dict) -> float:
    """Etsy money is {amount, divisor}: {2499, 100} -> 24.99"""
    if not isinstance(money, dict):
        raise InvalidInput(f"Invalid money value: {money!r}")
    divisor = money.get("divisor")
    if not divisor:
        raise InvalidInput(f"Invalid money divisor: {money!r}")
    return float(money["amount"]) / float(divisor)


def listing_status(state: Optional[str]) -> str:
    return STATUS_MAP.get((state or "").strip().lower(), "inactive")


def _normalize(raw: dict) -> dict:
    """Validate one provider listing before anything touches the DB."""
    return {
        "external_id": str(raw["listing_id"]),
        "title": raw["title"],
        "description": raw.get("description") or "",
        "price": price_from_money(raw["price"]),
        "quantity": int(raw.get("quantity") or 0),
        "status": listing_status(raw.get("state")),
        "url": raw.get("url"),
    }


def _apply(obj, values: dict) -> list[str]:
    """Assign only the attributes whose value differs; returns the changed names."""
    changed = []
    for k, v in values.items():
        if getattr(obj, k) != v:
            setattr(obj, k, v)
            changed.append(k)
    return changed


def get_or_create_platform(db: Session, platform_type: str = "etsy") -> Platform:
    platform = db.query(Platform).filter(Platform.type == platform_type).first()
    if not platform:
        platform = Platform(
            name="Etsy",
            type=platform_type,
            api_endpoint=config.ETSY_API_BASE,
            is_active=True,
        )
        db.add(platform)
        db.commit()
        db.refresh(platform)
    return platform


def _upsert_listing(db: Session, item: dict, platform: Platform, now: datetime) -> Listing:
    fragrance = db.query(Fragrance).filter(Fragrance.sku == item["external_id"]).first()
    if not fragrance:
        fragrance = Fragrance(
            sku=item["external_id"],
            name=item["title"],
            description=item["description"],
            price=item["price"],
            current_stock=max(item["quantity"], 0),
            low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD,
        )
        db.add(fragrance)
        db.flush()

    listing = db.query(Listing).filter(Listing.external_id == item["external_id"]).first()
    if not listing:
        listing = Listing(external_id=item["external_id"])
        db.add(listing)

    values = dict(item, fragrance_id=fragrance.id, platform_id=platform.id)
    changed = _apply(listing, {k: values[k] for k in LISTING_FIELDS})
    if changed:
        listing.updated_at = now
        logger.debug("Listing %s changed: %s", listing.external_id, changed)
    listing.last_synced_at = now

    db.commit()
    return listing


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------

def sync_shop(
    db: Session,
    client: EtsyClient,
    connection: ShopConnection,
    now: Optional[datetime] = None,
) -> dict:
    """
    One sequential pass over the shop's active listings (first page only).
    Token/fetch errors propagate; a bad listing is logged and skipped.
    """
    access_token = ensure_fresh_token(db, client, connection, now=now)

    platform = get_or_create_platform(db)
    log = SyncLog(platform_id=platform.id, operation="listings_sync", status="syncing")
    db.add(log)
    db.commit()

    try:
        raw_listings = client.get_active_listings(access_token, connection.shop_id)
    except Exception as e:
        log.status = "error"
        log.message = str(e)
        log.completed_at = datetime.utcnow()
        db.commit()
        raise

    now = now or datetime.utcnow()
    synced = []
    skipped = []
    for raw in raw_listings:
        listing_id = raw.get("listing_id") if isinstance(raw, dict) else None
        try:
            item = _normalize(raw)
            _upsert_listing(db, item, platform, now)
        except Exception as e:
            db.rollback()
            logger.error("Error processing listing %s: %s", listing_id, e)
            skipped.append(str(listing_id))
            continue

        synced.append({"id": listing_id, "title": item["title"], "price": item["price"]})

    connection.last_sync_at = now
    log.status = "success"
    log.message = f"Synced {len(synced)} listings"
    log.details = json.dumps({"shop_id": connection.shop_id, "synced": len(synced), "skipped": skipped})
    log.completed_at = datetime.utcnow()
    db.commit()

    logger.info("Successfully synced %d listings for shop %s", len(synced), connection.shop_id)
    return {"syncedCount": len(synced), "listings": synced}
