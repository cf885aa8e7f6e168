from typing import Optional

from qrshield.schemas.qr_schemas import QRSecurityAnalysis
from qrshield.services.classifier import classify
from qrshield.services.extractor import extract
from qrshield.services.risk_aggregator import aggregate
from qrshield.services.risk_scorer import score
from qrshield.services.threat_database import ThreatDatabase
from qrshield.utils.logging_config import StructuredLogger, payload_preview, track_analysis
from qrshield.utils.preprocessing import normalize_payload

logger = StructuredLogger(__name__)

_default_threat_db: Optional[ThreatDatabase] = None


def default_threat_database() -> ThreatDatabase:
    """Shared built-in database, created on first use and never mutated here."""
    global _default_threat_db
    if _default_threat_db is None:
        _default_threat_db = ThreatDatabase.default()
    return _default_threat_db


@track_analysis
def analyze_qr(text: str, threat_db: Optional[ThreatDatabase] = None) -> QRSecurityAnalysis:
    """
    Main QR analysis pipeline.

    classify -> extract -> score -> aggregate, over one decoded payload.
    Pure apart from metrics: the same text and database give the same result.
    """
    db = threat_db if threat_db is not None else default_threat_database()
    text = normalize_payload(text)

    # 1) Payload type
    data_type = classify(text)

    # 2) Named fields for that type
    info = extract(text, data_type)

    # 3) Type-specific and generic checks
    checks = score(text, data_type, info, db)

    # 4) Final score, level, flags, threats
    analysis = aggregate(checks, info)

    logger.debug(
        "QR payload analysed",
        data_type=data_type.value,
        risk_score=analysis.risk_score,
        risk_level=analysis.risk_level.value,
        signals=[s.name for s in checks.signals],
        preview=payload_preview(text),
    )
    return analysis
