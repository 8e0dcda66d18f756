"""
FastAPI application entry point.

Main API server for the AssetCompass trade execution and valuation engine.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from assetcompass.core.config import settings
from assetcompass.core.errors import InvalidInput, NotFound, PriceUnavailable, TrackerError
from assetcompass.core.logging import setup_logging
from assetcompass.core.database import close_db
from assetcompass.api.deps import close_oracle

# Setup logging
setup_logging()

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Portfolio tracker - trade execution and valuation engine",
    debug=settings.DEBUG,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    InvalidInput: 422,
    NotFound: 404,
    PriceUnavailable: 503,
}


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """Map engine errors to a structured body naming the failed precondition."""
    status_code = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)),
        400,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.on_event("shutdown")
async def shutdown() -> None:
    """Run on application shutdown."""
    await close_oracle()
    await close_db()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }


from assetcompass.api.holdings import router as holdings_router
from assetcompass.api.portfolio import router as portfolio_router
from assetcompass.api.market import router as market_router

app.include_router(holdings_router, prefix="/api/v1/holdings", tags=["holdings"])
app.include_router(portfolio_router, prefix="/api/v1/portfolio", tags=["portfolio"])
app.include_router(market_router, prefix="/api/v1/market", tags=["market"])
