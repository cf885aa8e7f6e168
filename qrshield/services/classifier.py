import re
from typing import Callable, List, Tuple

from qrshield.schemas.qr_schemas import DataType


# Order matters: first match wins. A upi:// link must never fall through to URL.
CLASSIFICATION_RULES: List[Tuple[Callable[[str], bool], DataType]] = [
    (re.compile(r"^https?://", re.I).match, DataType.URL),
    (re.compile(r"^upi://", re.I).match, DataType.UPI),
    (re.compile(r"^WIFI:", re.I).match, DataType.WIFI),
    (re.compile(r"BEGIN:VCARD", re.I).search, DataType.CONTACT),
    (re.compile(r"^mailto:", re.I).match, DataType.EMAIL),
    (re.compile(r"^tel:", re.I).match, DataType.PHONE),
]


def classify(text: str) -> DataType:
    """Tag a decoded QR payload with its data type. Falls back to TEXT."""
    for matches, data_type in CLASSIFICATION_RULES:
        if matches(text):
            return data_type
    return DataType.TEXT
