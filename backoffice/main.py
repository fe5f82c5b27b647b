# backoffice/main.py

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from backoffice.config import CORS_ORIGINS, LOG_LEVEL
from backoffice.db import Base, db_ping, engine
from backoffice import models  # noqa: F401  (registers tables on Base)
from backoffice.ai_routes import router as ai_router
from backoffice.etsy_routes import router as etsy_router
from backoffice.production_routes import router as production_router
from backoffice.supply_price_routes import router as supply_price_router

# --- Logging configuration ---
root_logger = logging.getLogger()
if not root_logger.handlers:
    root_logger.setLevel(LOG_LEVEL)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(handler)

logging.getLogger("uvicorn").propagate = True
logging.getLogger("uvicorn.error").propagate = True
logging.getLogger("uvicorn.access").propagate = True

logger = logging.getLogger(__name__)

# ensure tables exist (simple dev-mode migration)
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Shop Back-Office API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(etsy_router)
app.include_router(ai_router)
app.include_router(production_router)
app.include_router(supply_price_router)


@app.get("/health")
def health():
    try:
        return {"ok": db_ping() == 1}
    except Exception as e:
        logger.error("DB ping failed: %s", e)
        raise HTTPException(status_code=503, detail=f"Database unavailable: {e}")
