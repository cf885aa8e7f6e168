"""
Heuristic risk checks for QR payloads.

One type-specific branch runs per payload, plus the type-agnostic keyword and
obfuscation checks. Each check that fires becomes a SecuritySignal with a
non-negative point value, so the total can only grow as more checks fire.
Malformed payloads are evidence of risk, never an error.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from qrshield.schemas.qr_schemas import DataType, DomainReputation, ExtractedInfo
from qrshield.services.extractor import INVALID_URL_DOMAIN
from qrshield.services.threat_database import ThreatDatabase

# URL
URL_PATTERN_POINTS = 10
MALICIOUS_REPUTATION_POINTS = 50
SUSPICIOUS_REPUTATION_POINTS = 30
SHORTENER_POINTS = 15
INSECURE_PROTOCOL_POINTS = 10
LONG_URL_THRESHOLD = 200

# UPI
UPI_PATTERN_POINTS = 15
INVALID_VPA_POINTS = 40
LARGE_AMOUNT_THRESHOLD = 50_000
LARGE_AMOUNT_POINTS = 20
HIGH_AMOUNT_THRESHOLD = 100_000
VPA_STOPWORDS = ["test", "fake"]
URGENT_NOTE_WORDS = ["urgent", "emergency"]

# Wi-Fi
WIFI_PATTERN_POINTS = 10
WEAK_SECURITY_POINTS = 30
HIDDEN_NETWORK_POINTS = 15
SUSPICIOUS_SSID_WORDS = ["free wifi", "public", "guest", "open", "hack"]
WEAK_SECURITY_TYPES = {"nopass", "wep"}

# Contact
CONTACT_PATTERN_POINTS = 10

# Generic text (email, phone and plain text payloads)
SCAM_KEYWORD_POINTS = 10
SCAM_KEYWORDS = [
    "click here",
    "urgent",
    "limited time",
    "act now",
    "free money",
    "congratulations",
    "winner",
    "prize",
    "lottery",
    "inheritance",
]

# Every payload
SUSPICIOUS_KEYWORD_POINTS = 20
SUSPICIOUS_KEYWORDS = [
    "phishing",
    "malware",
    "virus",
    "hack",
    "steal",
    "fraud",
    "scam",
    "fake",
    "suspicious",
    "dangerous",
]
OBFUSCATION_POINTS = 15
OBFUSCATION_MIN_LENGTH = 20
SPECIAL_CHAR_RATIO = 0.3

_VPA = re.compile(r"[a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+")
_CONTACT_PHONE = re.compile(r"\+?[0-9\s\-()]+")
_BASE64 = re.compile(r"[A-Za-z0-9+/]*={0,2}")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9\s]")
_NOT_ALNUM_ASCII = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class SecuritySignal:
    """A single check that fired."""
    name: str
    points: int
    threats: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.points < 0:
            raise ValueError(f"Signal '{self.name}' has negative points: {self.points}")


@dataclass
class SecurityCheckResult:
    """Everything the scorer found for one payload."""
    data_type: DataType
    signals: List[SecuritySignal] = field(default_factory=list)

    # URL payloads only
    reputation: Optional[DomainReputation] = None
    is_shortened: bool = False
    phishing_patterns: List[str] = field(default_factory=list)
    # Every URL-specific pattern check that fired, regex hits included
    suspicious_patterns: List[str] = field(default_factory=list)

    def add(self, name: str, points: int, *threats: str):
        self.signals.append(SecuritySignal(name=name, points=points, threats=threats))

    def has(self, name: str) -> bool:
        return any(s.name == name for s in self.signals)

    @property
    def total_points(self) -> int:
        return sum(s.points for s in self.signals)

    @property
    def threats(self) -> List[str]:
        return [t for s in self.signals for t in s.threats]


def _squash(value: str) -> str:
    return _NOT_ALNUM_ASCII.sub("", value.lower())


def _url_pattern(result: SecurityCheckResult, name: str, threat: str):
    result.suspicious_patterns.append(name)
    result.add(name, URL_PATTERN_POINTS, threat)


# ============== TYPE-SPECIFIC CHECKS ==============


def _score_url(text: str, info: ExtractedInfo, db: ThreatDatabase, result: SecurityCheckResult):
    if info.domain == INVALID_URL_DOMAIN:
        result.reputation = DomainReputation.MALICIOUS
        _url_pattern(result, "invalid_url", "Invalid URL format")
        result.add("malicious_reputation", MALICIOUS_REPUTATION_POINTS)
        result.add("insecure_protocol", INSECURE_PROTOCOL_POINTS, "Insecure connection (no HTTPS)")
        return

    domain = info.domain or ""
    reputation = DomainReputation.UNKNOWN

    if db.is_malicious_domain(domain):
        reputation = DomainReputation.MALICIOUS
        _url_pattern(result, "known_malicious_domain", "Known malicious domain")

    for pattern in db.match_phishing(text):
        result.phishing_patterns.append(pattern.source)
        _url_pattern(result, "phishing_pattern", f"Matches phishing pattern: {pattern.source}")
    # A pattern hit never downgrades a confirmed malicious domain
    if result.phishing_patterns and reputation != DomainReputation.MALICIOUS:
        reputation = DomainReputation.SUSPICIOUS

    if "xn--" in domain:
        _url_pattern(result, "punycode_domain", "Punycode domain (potential homograph attack)")

    if ".." in (info.path or ""):
        _url_pattern(result, "path_traversal", "Path traversal attempt")

    if len(text) > LONG_URL_THRESHOLD:
        _url_pattern(result, "long_url", "Unusually long URL")

    if reputation == DomainReputation.UNKNOWN and not result.signals:
        reputation = DomainReputation.GOOD

    if reputation == DomainReputation.MALICIOUS:
        result.add("malicious_reputation", MALICIOUS_REPUTATION_POINTS)
    elif reputation == DomainReputation.SUSPICIOUS:
        result.add("suspicious_reputation", SUSPICIOUS_REPUTATION_POINTS)
    result.reputation = reputation

    if db.is_shortener(domain):
        result.is_shortened = True
        result.add("url_shortener", SHORTENER_POINTS, "URL shortener hides the final destination")

    if info.protocol != "https:":
        result.add("insecure_protocol", INSECURE_PROTOCOL_POINTS, "Insecure connection (no HTTPS)")


def _score_upi(text: str, info: ExtractedInfo, db: ThreatDatabase, result: SecurityCheckResult):
    vpa = info.payee_vpa or ""
    amount = info.payment_amount

    if not _VPA.fullmatch(vpa):
        result.add("invalid_vpa", UPI_PATTERN_POINTS + INVALID_VPA_POINTS, "Invalid VPA format")

    if amount is not None and amount > HIGH_AMOUNT_THRESHOLD:
        result.add("high_amount", UPI_PATTERN_POINTS, "High transaction amount")

    if amount is not None and amount > LARGE_AMOUNT_THRESHOLD:
        result.add("large_amount", LARGE_AMOUNT_POINTS, "Large payment amount")

    vpa_lower = vpa.lower()
    if any(word in vpa_lower for word in VPA_STOPWORDS):
        result.add("suspicious_vpa", UPI_PATTERN_POINTS, "Suspicious VPA keywords")

    note = (info.note or "").lower()
    if any(word in note for word in URGENT_NOTE_WORDS):
        result.add("urgent_note", UPI_PATTERN_POINTS, "Urgent/emergency payment request")


def _score_wifi(text: str, info: ExtractedInfo, db: ThreatDatabase, result: SecurityCheckResult):
    # "FreeWiFi", "Free-WiFi" and "free wifi" all hit the same stopword
    ssid = _squash(info.network_name or "")
    if any(_squash(word) in ssid for word in SUSPICIOUS_SSID_WORDS):
        result.add("suspicious_ssid", WIFI_PATTERN_POINTS, "Suspicious SSID name")

    if (info.security_type or "").strip().lower() in WEAK_SECURITY_TYPES:
        result.add("weak_security", WIFI_PATTERN_POINTS + WEAK_SECURITY_POINTS, "Weak or no security")

    if info.hidden:
        result.add("hidden_network", WIFI_PATTERN_POINTS + HIDDEN_NETWORK_POINTS, "Hidden network")


def _score_contact(text: str, info: ExtractedInfo, db: ThreatDatabase, result: SecurityCheckResult):
    if info.email_address and "@" not in info.email_address:
        result.add("invalid_email", CONTACT_PATTERN_POINTS, "Invalid email format")

    if info.phone_number and not _CONTACT_PHONE.fullmatch(info.phone_number):
        result.add("invalid_phone", CONTACT_PATTERN_POINTS, "Invalid phone format")


def _score_generic_text(text: str, info: ExtractedInfo, db: ThreatDatabase, result: SecurityCheckResult):
    # Uncapped: every distinct keyword adds its points.
    lower = text.lower()
    for keyword in SCAM_KEYWORDS:
        if keyword in lower:
            result.add("scam_keyword", SCAM_KEYWORD_POINTS, f"Scam keyword: {keyword}")


TYPE_CHECKS: Dict[DataType, Callable[[str, ExtractedInfo, ThreatDatabase, SecurityCheckResult], None]] = {
    DataType.URL: _score_url,
    DataType.UPI: _score_upi,
    DataType.WIFI: _score_wifi,
    DataType.CONTACT: _score_contact,
    DataType.EMAIL: _score_generic_text,
    DataType.PHONE: _score_generic_text,
    DataType.TEXT: _score_generic_text,
}


# ============== TYPE-AGNOSTIC CHECKS ==============


def contains_suspicious_keywords(text: str) -> bool:
    lower = text.lower()
    return any(keyword in lower for keyword in SUSPICIOUS_KEYWORDS)


def has_obfuscated_content(text: str) -> bool:
    """Looks base64-encoded, or is more than 30% punctuation/symbols."""
    if len(text) > OBFUSCATION_MIN_LENGTH and _BASE64.fullmatch(text):
        return True
    special_count = len(text) - len(_NON_ALNUM.sub("", text))
    return special_count > len(text) * SPECIAL_CHAR_RATIO


def score(
    text: str,
    data_type: DataType,
    info: ExtractedInfo,
    threat_db: ThreatDatabase,
) -> SecurityCheckResult:
    """Run the type-specific checks for ``data_type`` plus the generic ones."""
    result = SecurityCheckResult(data_type=data_type)

    TYPE_CHECKS[data_type](text, info, threat_db, result)

    if contains_suspicious_keywords(text):
        result.add("suspicious_keywords", SUSPICIOUS_KEYWORD_POINTS, "Contains suspicious keywords")

    if has_obfuscated_content(text):
        result.add("obfuscated_content", OBFUSCATION_POINTS, "Contains obfuscated content")

    return result
