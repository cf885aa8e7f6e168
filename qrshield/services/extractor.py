"""
Per-type field extraction for decoded QR payloads.

Every extractor is total: malformed payloads come back with fields missing or
set to the type's "invalid" sentinel, never with an exception.
"""

import math
import re
from typing import Callable, Dict, Optional
from urllib.parse import parse_qsl, urlsplit

import idna

from qrshield.schemas.qr_schemas import DataType, ExtractedInfo

INVALID_URL_DOMAIN = "Invalid URL"
UNKNOWN_MERCHANT = "Unknown"
UNKNOWN_NETWORK = "Unknown"

_FORBIDDEN_HOST_CHARS = re.compile(r"[\s<>\\^|]")
_WIFI_FIELD = re.compile(r"(?:\\.|[^\\;])+", re.S)
_WIFI_ESCAPE = re.compile(r"\\(.)", re.S)
_VCARD_PROPERTY = re.compile(r"^(FN|TEL|EMAIL|ORG)(?:;[^:]*)?:(.*)$", re.I)
_MAILTO_PREFIX = re.compile(r"^mailto:", re.I)
_TEL_PREFIX = re.compile(r"^tel:", re.I)


def _query_params(query: str) -> Dict[str, str]:
    # dict() keeps the last value for repeated keys
    return dict(parse_qsl(query, keep_blank_values=True))


def _ascii_host(host: str) -> Optional[str]:
    """Host in ASCII form, IDNA-encoding internationalized names. None if unusable."""
    if _FORBIDDEN_HOST_CHARS.search(host):
        return None
    if host.isascii():
        return host
    try:
        return idna.encode(host, uts46=True).decode("ascii")
    except (idna.IDNAError, UnicodeError):
        return None


def _parse_amount(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        amount = float(raw.strip())
    except ValueError:
        return None
    if not math.isfinite(amount):
        return None
    return amount


# ============== EXTRACTORS ==============


def _extract_url(text: str) -> ExtractedInfo:
    invalid = ExtractedInfo(data_type=DataType.URL, domain=INVALID_URL_DOMAIN)
    try:
        parts = urlsplit(text.strip())
        host = parts.hostname
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return invalid

    if not host:
        return invalid
    host = _ascii_host(host)
    if host is None:
        return invalid

    return ExtractedInfo(
        data_type=DataType.URL,
        domain=host,
        protocol=f"{parts.scheme.lower()}:",
        path=parts.path or "/",
        parameters=_query_params(parts.query),
    )


def _extract_upi(text: str) -> ExtractedInfo:
    # upi://pay?pa=merchant@bank&pn=Store&am=100&cu=INR&tn=Note
    query = text.split("?", 1)[1] if "?" in text else ""
    params = _query_params(query)
    return ExtractedInfo(
        data_type=DataType.UPI,
        payee_vpa=params.get("pa"),
        merchant_info=params.get("pn") or UNKNOWN_MERCHANT,
        payment_amount=_parse_amount(params.get("am")),
        currency=params.get("cu"),
        note=params.get("tn"),
    )


def _extract_wifi(text: str) -> ExtractedInfo:
    # WIFI:T:WPA;S:NetworkName;P:password;H:false;;  (\ escapes ; , : \ ")
    fields: Dict[str, str] = {}
    for segment in _WIFI_FIELD.findall(text[len("WIFI:"):]):
        if len(segment) >= 2 and segment[1] == ":":
            fields[segment[0].upper()] = _WIFI_ESCAPE.sub(r"\1", segment[2:])

    hidden = fields.get("H")
    return ExtractedInfo(
        data_type=DataType.WIFI,
        network_name=fields.get("S", UNKNOWN_NETWORK),
        security_type=fields.get("T"),
        password=fields.get("P"),
        hidden=hidden.strip().lower() == "true" if hidden is not None else None,
    )


def _extract_email(text: str) -> ExtractedInfo:
    address = _MAILTO_PREFIX.sub("", text, count=1).split("?", 1)[0]
    return ExtractedInfo(data_type=DataType.EMAIL, email_address=address)


def _extract_phone(text: str) -> ExtractedInfo:
    return ExtractedInfo(
        data_type=DataType.PHONE,
        phone_number=_TEL_PREFIX.sub("", text, count=1),
    )


def _extract_contact(text: str) -> ExtractedInfo:
    found: Dict[str, str] = {}
    for line in text.splitlines():
        match = _VCARD_PROPERTY.match(line.strip())
        if match and match.group(2).strip():
            found[match.group(1).upper()] = match.group(2).strip()

    return ExtractedInfo(
        data_type=DataType.CONTACT,
        contact_name=found.get("FN"),
        phone_number=found.get("TEL"),
        email_address=found.get("EMAIL"),
        organization=found.get("ORG"),
    )


def _extract_text(text: str) -> ExtractedInfo:
    return ExtractedInfo(data_type=DataType.TEXT)


EXTRACTORS: Dict[DataType, Callable[[str], ExtractedInfo]] = {
    DataType.URL: _extract_url,
    DataType.UPI: _extract_upi,
    DataType.WIFI: _extract_wifi,
    DataType.EMAIL: _extract_email,
    DataType.PHONE: _extract_phone,
    DataType.CONTACT: _extract_contact,
    DataType.TEXT: _extract_text,
}


def extract(text: str, data_type: DataType) -> ExtractedInfo:
    """Parse the payload into the named fields for its data type."""
    return EXTRACTORS[data_type](text)
