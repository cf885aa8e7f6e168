"""
Admin API endpoints for QRShield management.

Includes:
- Threat database management (malicious domains, phishing patterns, shorteners)
- Reloading the threat feed from disk
- Metrics and scan statistics
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from qrshield.api.security import verify_api_token
from qrshield.config import settings
from qrshield.schemas.qr_schemas import DataType
from qrshield.services.qr_service import load_configured_threat_database, qr_service
from qrshield.services.threat_database import ThreatDatabaseError
from qrshield.utils.logging_config import metrics


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(verify_api_token)],
)


# ============== SCHEMAS ==============


class DomainRequest(BaseModel):
    domain: str


class PatternRequest(BaseModel):
    pattern: str


class ThreatDatabaseStats(BaseModel):
    malicious_domains: int
    phishing_patterns: int
    shortener_domains: int


# ============== THREAT DATABASE ENDPOINTS ==============
# Updates are copy-on-write: build a new database, then swap it in, so an
# analysis in flight never sees a half-applied change.


@router.post("/malicious-domains")
async def add_malicious_domain(request: DomainRequest):
    """Add a domain (and implicitly its subdomains) to the malicious set."""
    db = qr_service.threat_database.copy()
    if not db.add_malicious_domain(request.domain):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Domain must not be empty.",
        )
    qr_service.update_threat_database(db)
    return {"message": "Added to malicious domains", "domain": request.domain}


@router.delete("/malicious-domains")
async def remove_malicious_domain(request: DomainRequest):
    """Remove a domain from the malicious set."""
    db = qr_service.threat_database.copy()
    removed = db.remove_malicious_domain(request.domain)
    if removed:
        qr_service.update_threat_database(db)
    return {
        "message": "Removed from malicious domains" if removed else "Domain not found",
        "domain": request.domain,
    }


@router.post("/phishing-patterns")
async def add_phishing_pattern(request: PatternRequest):
    """Add a case-insensitive regex matched against full URLs."""
    db = qr_service.threat_database.copy()
    if not db.add_phishing_pattern(request.pattern):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid regex pattern.",
        )
    qr_service.update_threat_database(db)
    return {"message": "Added phishing pattern", "pattern": request.pattern}


@router.post("/shortener-domains")
async def add_shortener_domain(request: DomainRequest):
    """Register a link shortener domain."""
    db = qr_service.threat_database.copy()
    if not db.add_shortener_domain(request.domain):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Domain must not be empty.",
        )
    qr_service.update_threat_database(db)
    return {"message": "Added shortener domain", "domain": request.domain}


@router.post("/threat-db/reload", response_model=ThreatDatabaseStats)
async def reload_threat_database():
    """Reload the configured threat feed. The current data stays on failure."""
    if not settings.threat_feed_path:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No threat feed configured (QRSHIELD_THREAT_FEED_PATH).",
        )
    try:
        db = load_configured_threat_database()
    except ThreatDatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )
    qr_service.update_threat_database(db)
    return ThreatDatabaseStats(**db.get_stats())


@router.get("/threat-db/stats", response_model=ThreatDatabaseStats)
async def get_threat_database_stats():
    return ThreatDatabaseStats(**qr_service.threat_database.get_stats())


# ============== METRICS ==============


@router.get("/metrics")
async def get_metrics(data_type: Optional[DataType] = None):
    """In-process analysis counters and latencies, optionally for one payload type."""
    if data_type is None:
        return metrics.get_stats()
    return {
        "data_type": data_type.value,
        "counters": metrics.counters_with_prefix(f"analysis.{data_type.value}."),
    }


@router.post("/stats/reset")
async def reset_scan_statistics():
    qr_service.reset_statistics()
    return {"message": "Scan statistics reset"}
