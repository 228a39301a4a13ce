"""
ProcureHub API application.
"""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from procurehub.core.config import settings
from procurehub.core.logging import setup_logging, get_logger
from procurehub.db.session import init_db
from procurehub.api import (
    auth, admin, orgs, vendors, products, boms, rfx, auctions,
    purchase_orders, approvals, notifications, audit, dashboard,
)

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION}")
    init_db()
    yield
    logger.info("Shutting down")


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(auth.session_router)
app.include_router(admin.router)
app.include_router(orgs.router)
app.include_router(vendors.router)
app.include_router(products.router)
app.include_router(boms.router)
app.include_router(rfx.router)
app.include_router(auctions.router)
app.include_router(purchase_orders.router)
app.include_router(approvals.router)
app.include_router(notifications.router)
app.include_router(audit.router)
app.include_router(dashboard.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "app": settings.APP_NAME, "version": settings.APP_VERSION}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
