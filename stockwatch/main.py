"""
Stock Watch - FastAPI Application
Thin HTTP surface over the availability checker.
"""
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from stockwatch import __version__
from stockwatch.config import config
from stockwatch.errors import ErrorKind, ScraperError
from stockwatch.layers.checker import AvailabilityChecker
from stockwatch.layers.extraction import ExtractionPipeline
from stockwatch.models.availability import BulkCheckSummary, PriceInfo
from stockwatch.utils.logger import get_logger, get_trace_id, set_trace_id


# Initialize FastAPI app
app = FastAPI(
    title="Stock Watch",
    description="Checks product pages for stock availability and price",
    version=__version__,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize layers
extraction_pipeline = ExtractionPipeline()
checker = AvailabilityChecker(pipeline=extraction_pipeline)

logger = get_logger("main")

if config.manual_verification_requested_without_headless():
    logger.warning(
        "config_inconsistent",
        reason="ALLOW_MANUAL_VERIFICATION needs ENABLE_HEADLESS_BROWSER",
    )


# HTTP status per error kind
ERROR_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.SCRAPING: 422,
    ErrorKind.BOT_PROTECTION: 422,
    ErrorKind.HTTP_STATUS: 502,
    ErrorKind.NETWORK: 502,
    ErrorKind.INTERNAL: 500,
}


# Request/Response models
class CheckRequest(BaseModel):
    """Request model for a single availability check."""
    url: str
    enable_headless: Optional[bool] = None
    allow_manual_verification: Optional[bool] = None


class BulkCheckRequest(BaseModel):
    """Request model for a bulk sweep."""
    urls: List[str] = Field(min_length=1)
    enable_headless: Optional[bool] = None
    allow_manual_verification: Optional[bool] = None


class ExtractRequest(BaseModel):
    """Request model for extraction from already-fetched HTML."""
    url: str
    html: str


class CheckResponse(BaseModel):
    """Response model for a single check or extraction."""
    url: str
    status: str
    raw_availability: Optional[str]
    price: PriceInfo
    trace_id: str


class BulkCheckResponse(BaseModel):
    summary: BulkCheckSummary
    trace_id: str


@app.exception_handler(ScraperError)
async def scraper_error_handler(request: Request, exc: ScraperError):
    """Map typed errors to HTTP responses."""
    logger.error(
        "request_failed",
        path=request.url.path,
        error=str(exc),
        error_code=exc.code,
    )
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(exc.kind, 500),
        content={"error": exc.to_dict(), "trace_id": get_trace_id()},
    )


# API Routes
@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.post("/api/check", response_model=CheckResponse)
async def check_availability(request: CheckRequest):
    """
    Fetch a product page and extract availability and price.

    Escalates to the headless browser and manual verification when
    permitted by the request (or the configured defaults).
    """
    trace_id = set_trace_id()
    logger.info("check_request", url=request.url, trace_id=trace_id)

    result = await checker.check(
        request.url,
        enable_headless=request.enable_headless,
        allow_manual_verification=request.allow_manual_verification,
    )
    return CheckResponse(
        url=request.url,
        status=result.status.value,
        raw_availability=result.raw_availability,
        price=result.price,
        trace_id=trace_id,
    )


@app.post("/api/check/bulk", response_model=BulkCheckResponse)
async def check_availability_bulk(request: BulkCheckRequest):
    """Check many URLs with pacing; failures are reported per URL."""
    logger.info("bulk_check_request", count=len(request.urls))

    summary = await checker.check_all(
        request.urls,
        enable_headless=request.enable_headless,
        allow_manual_verification=request.allow_manual_verification,
    )
    return BulkCheckResponse(summary=summary, trace_id=get_trace_id())


@app.post("/api/extract", response_model=CheckResponse)
async def extract_availability(request: ExtractRequest):
    """Run the extraction pipeline on supplied HTML without fetching it."""
    trace_id = set_trace_id()
    logger.info("extract_request", url=request.url, html_length=len(request.html))

    result = await extraction_pipeline.extract(request.html, request.url)
    return CheckResponse(
        url=request.url,
        status=result.status.value,
        raw_availability=result.raw_availability,
        price=result.price,
        trace_id=trace_id,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT, reload=config.DEBUG)
