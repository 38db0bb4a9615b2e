from __future__ import annotations

"""
FastAPI application exposing similar-item recommendations.

- GET /health
- GET /products/{item_id}/similar?limit=4&include_scores=false

An unknown or ineligible product returns an empty list (200). A catalog
failure returns 503 so callers can tell it apart from "nothing similar".
"""

from typing import Optional

from fastapi import FastAPI, HTTPException, Path, Query
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .catalog import CatalogError, load_catalog_snapshot
from .config import (
    DEFAULT_LIMIT,
    LIMIT_MAX,
    LIMIT_MIN,
    EngineConfig,
    HealthResponse,
    SimilarItemsResponse,
)
from .engine import SimilarItemsEngine
from .mapping import to_response


# -----------------------
# FastAPI app + startup
# -----------------------

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

_engine: Optional[SimilarItemsEngine] = None


def get_engine() -> SimilarItemsEngine:
    """Build the process-wide engine on first use."""
    global _engine
    if _engine is None:
        catalog = load_catalog_snapshot()
        _engine = SimilarItemsEngine(catalog, EngineConfig())
        logger.info("Similar-items engine ready ({} catalog items)", len(catalog))
    return _engine


@app.on_event("startup")
def startup_event() -> None:
    logger.info("Starting app warmup...")
    try:
        get_engine()
    except CatalogError as e:
        # keep serving /health; requests will retry the load
        logger.warning("Catalog not available at startup: {}", e)
    logger.info("Warmup complete.")


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="healthy")


@app.get("/products/{item_id}/similar", response_model=SimilarItemsResponse, response_model_exclude_none=True)
def similar_products(
    item_id: int = Path(..., gt=0, description="Product ID"),
    limit: int = Query(DEFAULT_LIMIT, ge=LIMIT_MIN, le=LIMIT_MAX, description="Number of similar products to return"),
    include_scores: bool = Query(False, description="Include similarity scores in response"),
) -> SimilarItemsResponse:
    try:
        engine = get_engine()
        scores = engine.get_similar_items(item_id, limit)
    except CatalogError as e:
        logger.exception("Failed to get similar products for {}: {}", item_id, e)
        raise HTTPException(status_code=503, detail=f"Failed to get similar products: {e}")
    return to_response(item_id, scores, include_scores)
