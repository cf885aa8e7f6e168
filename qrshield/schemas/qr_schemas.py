"""
Value objects for QR payload analysis.

Everything produced by the analysis pipeline is frozen: an analysis is
computed once and handed back to the caller, never mutated afterwards.
"""

import time
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DataType(str, Enum):
    URL = "url"
    UPI = "upi"
    WIFI = "wifi"
    CONTACT = "contact"
    EMAIL = "email"
    PHONE = "phone"
    TEXT = "text"


class RiskLevel(str, Enum):
    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DomainReputation(str, Enum):
    GOOD = "good"
    SUSPICIOUS = "suspicious"
    MALICIOUS = "malicious"
    UNKNOWN = "unknown"


# ============== CAPTURE ==============


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class BoundingBox(BaseModel):
    """Corner points of a detected QR code inside the captured frame."""
    model_config = ConfigDict(frozen=True)

    top_left: Point
    top_right: Point
    bottom_left: Point
    bottom_right: Point


class QRPayload(BaseModel):
    """Decoded QR text plus the scanner's capture metadata."""
    model_config = ConfigDict(frozen=True)

    data: str
    timestamp: float = Field(default_factory=time.time)
    location: Optional[BoundingBox] = None


# ============== ANALYSIS ==============


class ExtractedInfo(BaseModel):
    """
    Fields parsed out of a payload, tagged with the payload type.

    Every field is optional; None means the payload did not carry it.
    Which fields can be set depends on ``data_type``:

    - url: domain, protocol, path, parameters
    - upi: payee_vpa, merchant_info, payment_amount, currency, note
    - wifi: network_name, security_type, password, hidden
    - email: email_address
    - phone: phone_number
    - contact: contact_name, phone_number, email_address, organization
    """
    model_config = ConfigDict(frozen=True)

    data_type: DataType

    domain: Optional[str] = None
    protocol: Optional[str] = None
    path: Optional[str] = None
    parameters: Optional[Dict[str, str]] = None

    payee_vpa: Optional[str] = None
    merchant_info: Optional[str] = None
    payment_amount: Optional[float] = None
    currency: Optional[str] = None
    note: Optional[str] = None

    network_name: Optional[str] = None
    security_type: Optional[str] = None
    password: Optional[str] = None
    hidden: Optional[bool] = None

    contact_name: Optional[str] = None
    organization: Optional[str] = None
    phone_number: Optional[str] = None
    email_address: Optional[str] = None

    def present_fields(self) -> Dict[str, object]:
        """Fields actually found in the payload (excludes the type tag)."""
        return self.model_dump(exclude_none=True, exclude={"data_type"})


class QRSecurityAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    data_type: DataType
    risk_score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    is_phishing: bool
    is_malicious: bool
    has_redirect: bool
    domain_reputation: Optional[DomainReputation] = None  # URL payloads only
    threats: List[str]
    extracted_info: ExtractedInfo
    recommendations: List[str] = Field(default_factory=list)


# ============== STATISTICS ==============


class ScanStatistics(BaseModel):
    """Running totals over every payload a service instance analysed."""
    total_scanned: int = 0
    malicious_detected: int = 0  # high or critical
    phishing_attempts: int = 0
    average_risk_score: float = 0.0
    by_data_type: Dict[str, int] = Field(default_factory=dict)


# ============== API ==============


class AnalyzeQRRequest(BaseModel):
    """Decoded QR text submitted by a scanner client."""
    data: str
    timestamp: Optional[float] = None
    location: Optional[BoundingBox] = None

    def to_payload(self) -> QRPayload:
        if self.timestamp is None:
            return QRPayload(data=self.data, location=self.location)
        return QRPayload(data=self.data, timestamp=self.timestamp, location=self.location)
