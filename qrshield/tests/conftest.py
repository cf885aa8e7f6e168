import pytest
from fastapi.testclient import TestClient

from qrshield.api.security import rate_limiter
from qrshield.api.server import app
from qrshield.services.qr_service import qr_service
from qrshield.services.threat_database import ThreatDatabase


@pytest.fixture
def client():
    """FastAPI test client fixture."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_service_state():
    """Isolate tests that go through the global service or the rate limiter."""
    original_db = qr_service.threat_database
    rate_limiter.reset()
    qr_service.reset_statistics()
    yield
    qr_service.update_threat_database(original_db)
    qr_service.reset_statistics()
    rate_limiter.reset()


@pytest.fixture
def threat_db():
    """Fresh built-in threat database, safe to mutate."""
    return ThreatDatabase.default()


@pytest.fixture
def sample_safe_url():
    """HTTPS link with nothing suspicious about it."""
    return "https://secure-bank.com/login"


@pytest.fixture
def sample_shortened_url():
    """Shortened phishing-style link."""
    return "https://bit.ly/fake-bank-login"


@pytest.fixture
def sample_safe_upi():
    """Ordinary merchant payment request."""
    return "upi://pay?pa=merchant@bank&pn=Store&am=1000"


@pytest.fixture
def sample_fraud_upi():
    """Payment request with a malformed VPA and a huge amount."""
    return "upi://pay?pa=not-an-email&pn=Test&am=999999"


@pytest.fixture
def sample_open_wifi():
    """Open Wi-Fi network with a bait SSID."""
    return "WIFI:T:nopass;S:FreeWiFi;P:;;"


@pytest.fixture
def sample_vcard():
    """Well-formed contact card."""
    return (
        "BEGIN:VCARD\r\n"
        "VERSION:3.0\r\n"
        "FN:Jane Doe\r\n"
        "TEL;TYPE=CELL:+1 555 0100\r\n"
        "EMAIL:jane@example.com\r\n"
        "ORG:Acme Corp\r\n"
        "END:VCARD"
    )
