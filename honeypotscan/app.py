from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
import structlog
from prometheus_fastapi_instrumentator import Instrumentator
from typing import Dict, List

from .config.settings import settings
from .models.api_models import (
    BatchScanRequest,
    CodeScanRequest,
    CodeScanResponse,
    ErrorResponse,
    HealthResponse,
    ScanRequest,
    ScanResponse,
)
from .models.contract_models import explanation_to_dict
from .services import HoneypotScanner, ScanError, PATTERN_EXPLANATIONS

# Configure logging
logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="HoneypotScan",
    description="API for screening smart contract source for honeypot patterns",
    version=settings.VERSION
)

# Initialize services
scanner = None


@app.on_event("startup")
async def startup_event():
    global scanner
    scanner = HoneypotScanner()
    await scanner.initialize()
    logger.info("scanner_started",
                api_keys=len(scanner.api_keys),
                detection_version=settings.DETECTION_VERSION,
                min_patterns=scanner.min_patterns)


@app.on_event("shutdown")
async def shutdown_event():
    if scanner:
        await scanner.close()


def get_scanner() -> HoneypotScanner:
    return scanner


# Configure rate limiting. The default memory:// storage counts per process only;
# point RATE_LIMIT_STORAGE_URI at a shared store when running several instances.
limiter = Limiter(key_func=get_remote_address, storage_uri=settings.RATE_LIMIT_STORAGE_URI)
app.state.limiter = limiter

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Add metrics
Instrumentator().instrument(app).expose(app)


def error_response(error: ScanError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred. Please try again later.",
            "code": "INTERNAL_ERROR",
        },
    )


@app.middleware("http")
async def limit_body_size(request: Request, call_next):
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > settings.MAX_REQUEST_BODY_SIZE:
        logger.warning("request_too_large", path=request.url.path, content_length=int(content_length))
        return JSONResponse(
            status_code=413,
            content={
                "error": f"Request body too large (max {settings.MAX_REQUEST_BODY_SIZE // 1024}KB)",
                "code": "REQUEST_TOO_LARGE",
            },
        )
    return await call_next(request)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("rate_limit_exceeded", client=get_remote_address(request), limit=str(exc.detail))
    return JSONResponse(
        status_code=429,
        content={
            "error": f"Rate limit exceeded ({exc.detail}). Please try again later.",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": "60"},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "code": "INVALID_REQUEST"},
    )

# Routes


@app.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status="healthy",
        version=settings.VERSION,
        detectionVersion=settings.DETECTION_VERSION,
    )


@app.get("/api/patterns")
async def list_patterns() -> List[Dict]:
    """
    Describe every pattern the detector looks for
    """
    return [explanation_to_dict(e) for e in PATTERN_EXPLANATIONS.values()]


@app.post("/api/scan", response_model=ScanResponse, responses={
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
})
@limiter.limit(settings.RATE_LIMIT_SCAN)
async def scan_contract(
    request: Request,
    scan_request: ScanRequest,
    scanner_service: HoneypotScanner = Depends(get_scanner),
):
    """
    Resolve the contract's chain, fetch its verified source and scan it
    """
    try:
        return await scanner_service.scan_address(scan_request.address,
                                                  skip_cache=scan_request.skipCache)
    except ScanError as e:
        logger.warning("scan_failed",
                       address=scan_request.address,
                       code=e.code,
                       error=str(e))
        return error_response(e)
    except Exception:
        logger.exception("scan_unexpected_error", address=scan_request.address)
        return internal_error_response()


@app.post("/api/scan-code", response_model=CodeScanResponse, responses={
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
})
@limiter.limit(settings.RATE_LIMIT_SCAN)
async def scan_code(
    request: Request,
    code_request: CodeScanRequest,
    scanner_service: HoneypotScanner = Depends(get_scanner),
):
    """
    Scan pasted Solidity source
    """
    try:
        return scanner_service.scan_code(code_request.code)
    except ScanError as e:
        logger.info("code_scan_rejected", code=e.code, error=str(e))
        return error_response(e)
    except Exception:
        logger.exception("code_scan_unexpected_error")
        return internal_error_response()


@app.post("/api/scan-batch", responses={
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
})
@limiter.limit(settings.RATE_LIMIT_SCAN)
async def scan_batch(
    request: Request,
    batch_request: BatchScanRequest,
    scanner_service: HoneypotScanner = Depends(get_scanner),
):
    """
    Scan up to three addresses; per-address failures are reported inline
    """
    try:
        return {"results": await scanner_service.scan_batch(batch_request.addresses)}
    except ScanError as e:
        return error_response(e)
    except Exception:
        logger.exception("batch_scan_unexpected_error")
        return internal_error_response()
