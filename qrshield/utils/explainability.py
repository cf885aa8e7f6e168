"""
Explainability utilities.
Turns a scored QR payload into plain-language advice for the person scanning it.
"""

from typing import List, Optional

from qrshield.schemas.qr_schemas import DataType, DomainReputation, ExtractedInfo

NO_CONCERNS = "No immediate concerns detected"


def generate_recommendations(
    risk_score: int,
    data_type: DataType,
    info: ExtractedInfo,
    reputation: Optional[DomainReputation] = None,
    is_shortened: bool = False,
    weak_wifi_security: bool = False,
) -> List[str]:
    """
    Deterministic advice list for one analysis.

    Score bands drive the general advice; the payload type adds
    type-specific steps.
    """
    recommendations = []

    if risk_score > 60:
        recommendations.append("Do not proceed with this QR code")
        recommendations.append("Report this QR code as potentially malicious")
    elif risk_score > 40:
        recommendations.append("Exercise caution before proceeding")
        recommendations.append("Verify the source of this QR code")

    if data_type == DataType.URL:
        if reputation in (DomainReputation.SUSPICIOUS, DomainReputation.MALICIOUS):
            recommendations.append("Check the website's reputation before visiting")
        if is_shortened:
            recommendations.append("Expand the shortened link before opening it")
        if info.protocol != "https:":
            recommendations.append("Website lacks HTTPS - avoid entering sensitive data")

    if data_type == DataType.UPI:
        recommendations.append("Verify payment details before confirming")
        recommendations.append("Check merchant information carefully")

    if data_type == DataType.WIFI and weak_wifi_security:
        recommendations.append("Avoid sending sensitive data over this network")

    if not recommendations:
        recommendations.append(NO_CONCERNS)

    return recommendations
