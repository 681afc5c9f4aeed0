# src/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.app.config import settings
from src.app.deps import get_rate_limiter
from src.app.routers.recipes import router as recipes_router
from src.app.routers.scraper import router as scraper_router

# Logging simples no stdout (bom para dev e containers)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = FastAPI(title="Social Recipe Extraction API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Remaining", "X-RateLimit-Reset"],
)

app.include_router(scraper_router)
app.include_router(recipes_router)


@app.on_event("startup")
async def startup() -> None:
    await get_rate_limiter().start_sweeper()


@app.on_event("shutdown")
async def shutdown() -> None:
    await get_rate_limiter().stop_sweeper()


@app.get("/health")
def health():
    return {"ok": True}
