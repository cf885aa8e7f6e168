from typing import List

from qrshield.schemas.qr_schemas import (
    DataType,
    DomainReputation,
    ExtractedInfo,
    QRSecurityAnalysis,
)
from qrshield.services.risk_scorer import SecurityCheckResult
from qrshield.utils.explainability import generate_recommendations
from qrshield.utils.risk_levels import clamp_score, risk_level_for_score


def _dedupe(threats: List[str]) -> List[str]:
    # dict keeps first-seen order
    return list(dict.fromkeys(threats))


def aggregate(result: SecurityCheckResult, info: ExtractedInfo) -> QRSecurityAnalysis:
    """
    Fold scorer output into the final analysis.

    Sums every signal, clamps to [0, 100] and buckets the clamped score.
    ``is_phishing`` fires on a malicious reputation or on any URL pattern check
    (listed domain, phishing regex, punycode, traversal, long or invalid URL),
    so a lone weak pattern such as punycode is enough to set it.
    """
    risk_score = clamp_score(result.total_points)
    reputation = result.reputation

    is_phishing = reputation == DomainReputation.MALICIOUS or bool(result.suspicious_patterns)

    return QRSecurityAnalysis(
        data_type=result.data_type,
        risk_score=risk_score,
        risk_level=risk_level_for_score(risk_score),
        is_phishing=is_phishing,
        is_malicious=reputation == DomainReputation.MALICIOUS,
        has_redirect=result.is_shortened,
        domain_reputation=reputation if result.data_type == DataType.URL else None,
        threats=_dedupe(result.threats),
        extracted_info=info,
        recommendations=generate_recommendations(
            risk_score,
            result.data_type,
            info,
            reputation=reputation,
            is_shortened=result.is_shortened,
            weak_wifi_security=result.has("weak_security"),
        ),
    )
