from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from qrshield.config import settings
from qrshield.schemas.qr_schemas import (
    AnalyzeQRRequest,
    DataType,
    QRSecurityAnalysis,
    ScanStatistics,
)
from qrshield.services.qr_service import qr_service
from qrshield.api.security import verify_api_token, check_rate_limit
from qrshield.api.admin import router as admin_router
from qrshield.utils.logging_config import StructuredLogger, init_logging

VERSION = "0.1.0"

init_logging()

logger = StructuredLogger(__name__)

app = FastAPI(
    title="QRShield API",
    version=VERSION,
    description="Security analysis for decoded QR code payloads",
    docs_url="/docs" if settings.debug else None,  # Disable docs in production
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


@app.middleware("http")
async def add_rate_limit_headers(request: Request, call_next):
    response = await call_next(request)
    if hasattr(request.state, "rate_limit_remaining"):
        response.headers["X-RateLimit-Limit"] = str(request.state.rate_limit_limit)
        response.headers["X-RateLimit-Remaining"] = str(request.state.rate_limit_remaining)
    return response


app.include_router(admin_router)


@app.get("/health")
def health():
    """Health check endpoint - no auth required."""
    return {"status": "ok"}


@app.get("/status")
def status_info():
    """API status and configuration info."""
    return {
        "status": "ok",
        "version": VERSION,
        "environment": settings.environment,
        "auth_enabled": bool(settings.api_token),
        "rate_limit": {
            "requests": settings.rate_limit_requests,
            "window_seconds": settings.rate_limit_window,
        },
        "supported_types": [t.value for t in DataType],
        "threat_database": qr_service.threat_database.get_stats(),
    }


@app.post(
    "/analyze/qr",
    response_model=QRSecurityAnalysis,
    dependencies=[Depends(verify_api_token), Depends(check_rate_limit)],
)
async def analyze_qr_payload(request: AnalyzeQRRequest):
    """Analyse one decoded QR payload."""
    if len(request.data) > settings.max_payload_length:
        raise HTTPException(
            status_code=413,
            detail=f"QR payload exceeds {settings.max_payload_length} characters.",
        )

    analysis = qr_service.analyze_payload(request.to_payload())
    logger.info(
        "QR analysis served",
        data_type=analysis.data_type.value,
        risk_level=analysis.risk_level.value,
        risk_score=analysis.risk_score,
    )
    return analysis


@app.get(
    "/stats",
    response_model=ScanStatistics,
    dependencies=[Depends(verify_api_token)],
)
def scan_statistics():
    """Running totals for every payload analysed by this process."""
    return qr_service.statistics
