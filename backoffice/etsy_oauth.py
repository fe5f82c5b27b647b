# backoffice/etsy_oauth.py
# Etsy shop connection: authorization-code connect, transparent token refresh, disconnect.

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from backoffice import config
from backoffice.errors import NoActiveConnection, RecordNotFound, TokenExchangeError
from backoffice.etsy_client import EtsyClient
from backoffice.models import ShopConnection

logger = logging.getLogger(__name__)

EXPIRY_WARNING_DAYS = 7


def redirect_uri_for(origin: Optional[str]) -> str:
    """Same value must be used for the authorize URL and the token exchange."""
    if config.ETSY_REDIRECT_URI:
        return config.ETSY_REDIRECT_URI
    return f"{(origin or '').rstrip('/')}/etsy-callback"


def begin_connect(client: EtsyClient, user_id: uuid.UUID, origin: Optional[str] = None) -> str:
    # user id doubles as the anti-CSRF state
    return client.authorization_url(redirect_uri_for(origin), state=str(user_id))


def complete_connect(
    db: Session,
    client: EtsyClient,
    user_id: uuid.UUID,
    code: Optional[str],
    state: Optional[str],
    origin: Optional[str] = None,
    error: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ShopConnection:
    if error:
        raise TokenExchangeError(f"Authorization was not granted: {error}")
    if not code:
        raise TokenExchangeError("No authorization code received from Etsy")
    if state is not None and str(state) != str(user_id):
        raise TokenExchangeError("OAuth state does not match the current user")

    token = client.exchange_code(code, redirect_uri_for(origin))
    shop = client.get_shop(token["access_token"])

    now = now or datetime.utcnow()
    expires_at = now + timedelta(seconds=int(token.get("expires_in") or 0))
    shop_id = str(shop["shop_id"])

    conn = (
        db.query(ShopConnection)
        .filter(ShopConnection.user_id == user_id, ShopConnection.shop_id == shop_id)
        .first()
    )
    if not conn:
        conn = ShopConnection(user_id=user_id, shop_id=shop_id)
        db.add(conn)

    conn.shop_name = shop.get("shop_name") or shop_id
    conn.access_token = token["access_token"]
    conn.refresh_token = token.get("refresh_token")
    conn.expires_at = expires_at
    conn.is_active = True
    conn.last_sync_at = now

    db.commit()
    db.refresh(conn)
    logger.info("Connected Etsy shop %s (%s) for user %s", conn.shop_id, conn.shop_name, user_id)
    return conn


def ensure_fresh_token(
    db: Session,
    client: EtsyClient,
    connection: ShopConnection,
    now: Optional[datetime] = None,
) -> str:
    """
    Returns a usable access token. Refreshes (one call, no retry) only when
    now >= expires_at; a connection without expires_at counts as expired.
    A failed refresh raises TokenRefreshError and leaves the row untouched.
    """
    now = now or datetime.utcnow()
    if connection.expires_at is not None and now < connection.expires_at:
        return connection.access_token

    logger.info("Refreshing Etsy token for shop %s", connection.shop_id)
    data = client.refresh(connection.refresh_token or "")

    connection.access_token = data["access_token"]
    connection.refresh_token = data.get("refresh_token") or connection.refresh_token
    connection.expires_at = now + timedelta(seconds=int(data.get("expires_in") or 0))
    db.commit()
    return connection.access_token


def get_active_connection(db: Session, user_id: uuid.UUID, shop_id: Optional[str] = None) -> ShopConnection:
    q = db.query(ShopConnection).filter(
        ShopConnection.user_id == user_id,
        ShopConnection.is_active.is_(True),
    )
    if shop_id is not None:
        q = q.filter(ShopConnection.shop_id == str(shop_id))

    conn = q.order_by(ShopConnection.updated_at.desc()).first()
    if not conn:
        raise NoActiveConnection("No active Etsy connection found")
    return conn


def disconnect(db: Session, user_id: uuid.UUID, connection_id: uuid.UUID) -> ShopConnection:
    # tokens are kept, not revoked with the provider
    conn = (
        db.query(ShopConnection)
        .filter(ShopConnection.id == connection_id, ShopConnection.user_id == user_id)
        .first()
    )
    if not conn:
        raise RecordNotFound(f"Connection not found: {connection_id}")

    conn.is_active = False
    db.commit()
    db.refresh(conn)
    return conn


def token_expiring(connection: ShopConnection, now: Optional[datetime] = None, days: int = EXPIRY_WARNING_DAYS) -> bool:
    if connection.expires_at is None:
        return False
    now = now or datetime.utcnow()
    return connection.expires_at - now <= timedelta(days=days)
