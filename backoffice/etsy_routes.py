# backoffice/etsy_routes.py
# Etsy connect/callback/sync endpoints (edge-function envelopes) + connection management.

from __future__ import annotations

import logging
import uuid
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backoffice.auth import current_user_id
from backoffice.db import SessionLocal
from backoffice.errors import BackofficeError
from backoffice.etsy_client import EtsyClient
from backoffice.etsy_oauth import (
    begin_connect,
    complete_connect,
    disconnect,
    get_active_connection,
    token_expiring,
)
from backoffice.etsy_sync import sync_shop

logger = logging.getLogger(__name__)

router = APIRouter(tags=["etsy"])


def get_etsy_client() -> EtsyClient:
    return EtsyClient()


class EtsyOAuthRequest(BaseModel):
    action: str
    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None


class EtsySyncRequest(BaseModel):
    shop_id: Union[str, int] = Field(..., alias="shopId")


def _error(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _connection_out(conn) -> dict:
    # tokens never leave the server
    return {
        "id": str(conn.id),
        "shop_id": conn.shop_id,
        "shop_name": conn.shop_name,
        "is_active": conn.is_active,
        "expires_at": conn.expires_at.isoformat() if conn.expires_at else None,
        "last_sync_at": conn.last_sync_at.isoformat() if conn.last_sync_at else None,
        "token_expiring": token_expiring(conn),
    }


# ---------------------------------------------------------------------------
# Edge-function equivalents
# ---------------------------------------------------------------------------

@router.post("/functions/etsy-oauth")
def etsy_oauth(
    payload: EtsyOAuthRequest,
    request: Request,
    user_id: uuid.UUID = Depends(current_user_id),
    client: EtsyClient = Depends(get_etsy_client),
):
    origin = request.headers.get("origin")

    if payload.action == "connect":
        return {"authUrl": begin_connect(client, user_id, origin)}

    if payload.action != "callback":
        return _error("Invalid action", 400)

    db = SessionLocal()
    try:
        conn = complete_connect(
            db,
            client,
            user_id,
            code=payload.code,
            state=payload.state,
            origin=origin,
            error=payload.error,
        )
        return {"success": True, "shop": {"id": conn.shop_id, "name": conn.shop_name}}
    except BackofficeError as e:
        db.rollback()
        logger.error("Error in etsy-oauth callback: %s", e)
        return _error(str(e), e.status_code)
    except Exception as e:
        db.rollback()
        logger.exception("Error in etsy-oauth callback")
        return _error(f"Failed to store connection: {e}")
    finally:
        db.close()


@router.post("/functions/etsy-sync")
def etsy_sync(
    payload: EtsySyncRequest,
    user_id: uuid.UUID = Depends(current_user_id),
    client: EtsyClient = Depends(get_etsy_client),
):
    db = SessionLocal()
    try:
        conn = get_active_connection(db, user_id, str(payload.shop_id))
        result = sync_shop(db, client, conn)
        return {"success": True, **result}
    except BackofficeError as e:
        db.rollback()
        logger.error("Error in etsy-sync: %s", e)
        return _error(str(e), e.status_code)
    except Exception as e:
        db.rollback()
        logger.exception("Error in etsy-sync")
        return _error(f"Sync failed: {e}")
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Connection management
# ---------------------------------------------------------------------------

@router.get("/etsy/connection")
def etsy_connection(user_id: uuid.UUID = Depends(current_user_id)):
    db = SessionLocal()
    try:
        conn = get_active_connection(db, user_id)
        return _connection_out(conn)
    except BackofficeError as e:
        raise HTTPException(e.status_code, str(e))
    finally:
        db.close()


@router.post("/etsy/connections/{connection_id}/disconnect")
def etsy_disconnect(connection_id: uuid.UUID, user_id: uuid.UUID = Depends(current_user_id)):
    db = SessionLocal()
    try:
        conn = disconnect(db, user_id, connection_id)
        return _connection_out(conn)
    except BackofficeError as e:
        raise HTTPException(e.status_code, str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(500, f"Disconnect failed: {e}")
    finally:
        db.close()
