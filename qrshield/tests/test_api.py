"""Tests for the FastAPI endpoints."""

import json

from qrshield.config import settings


class TestHealthEndpoint:
    """Tests for /health and /status."""

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_status_lists_supported_types(self, client):
        response = client.get("/status")
        assert response.status_code == 200
        data = response.json()
        assert set(data["supported_types"]) == {
            "url", "upi", "wifi", "contact", "email", "phone", "text"
        }
        assert data["threat_database"]["malicious_domains"] >= 1

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


class TestAnalyzeEndpoint:
    """Tests for /analyze/qr."""

    def test_analyze_shortened_link(self, client, sample_shortened_url):
        response = client.post("/analyze/qr", json={"data": sample_shortened_url})
        assert response.status_code == 200
        data = response.json()
        assert data["data_type"] == "url"
        assert data["risk_level"] == "high"
        assert data["has_redirect"] is True
        assert data["domain_reputation"] == "suspicious"
        assert "recommendations" in data
        assert "X-RateLimit-Remaining" in response.headers

    def test_analyze_with_capture_metadata(self, client, sample_safe_upi):
        corner = {"x": 0, "y": 0}
        response = client.post(
            "/analyze/qr",
            json={
                "data": sample_safe_upi,
                "timestamp": 1700000000.0,
                "location": {
                    "top_left": corner,
                    "top_right": corner,
                    "bottom_left": corner,
                    "bottom_right": corner,
                },
            },
        )
        assert response.status_code == 200
        assert response.json()["extracted_info"]["payee_vpa"] == "merchant@bank"

    def test_missing_data_field(self, client):
        response = client.post("/analyze/qr", json={})
        assert response.status_code == 422

    def test_payload_too_large(self, client):
        response = client.post(
            "/analyze/qr", json={"data": "a" * (settings.max_payload_length + 1)}
        )
        assert response.status_code == 413

    def test_rate_limit(self, client, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 2)
        for _ in range(2):
            assert client.post("/analyze/qr", json={"data": "hi"}).status_code == 200
        response = client.post("/analyze/qr", json={"data": "hi"})
        assert response.status_code == 429
        assert "Retry-After" in response.headers

    def test_rotating_api_keys_share_the_client_limit(self, client, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 2)
        codes = [
            client.post(
                "/analyze/qr",
                json={"data": "hi"},
                headers={settings.api_token_header: f"k{i}"},
            ).status_code
            for i in range(10)
        ]
        assert codes[:2] == [200, 200]
        assert set(codes[2:]) == {429}


class TestAuthentication:
    """Tests for API token checks."""

    def test_token_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "secret")
        response = client.post("/analyze/qr", json={"data": "hello"})
        assert response.status_code == 401

    def test_wrong_token_rejected(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "secret")
        response = client.post(
            "/analyze/qr",
            json={"data": "hello"},
            headers={settings.api_token_header: "nope"},
        )
        assert response.status_code == 401

    def test_valid_token_accepted(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "secret")
        response = client.post(
            "/analyze/qr",
            json={"data": "hello"},
            headers={settings.api_token_header: "secret"},
        )
        assert response.status_code == 200


class TestStatsEndpoint:
    """Tests for /stats."""

    def test_stats_track_analyses(self, client, sample_fraud_upi, sample_safe_url):
        client.post("/analyze/qr", json={"data": sample_fraud_upi})
        client.post("/analyze/qr", json={"data": sample_safe_url})

        response = client.get("/stats")
        assert response.status_code == 200
        data = response.json()
        assert data["total_scanned"] == 2
        assert data["malicious_detected"] == 1
        assert data["by_data_type"] == {"upi": 1, "url": 1}

    def test_reset(self, client, sample_safe_url):
        client.post("/analyze/qr", json={"data": sample_safe_url})
        assert client.post("/admin/stats/reset").status_code == 200
        assert client.get("/stats").json()["total_scanned"] == 0


class TestAdminEndpoints:
    """Tests for threat database management."""

    def test_add_malicious_domain(self, client):
        response = client.post("/admin/malicious-domains", json={"domain": "evil.example"})
        assert response.status_code == 200

        data = client.post("/analyze/qr", json={"data": "https://evil.example/"}).json()
        assert data["is_malicious"] is True

    def test_remove_malicious_domain(self, client):
        response = client.request(
            "DELETE", "/admin/malicious-domains", json={"domain": "malicious-site.com"}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Removed from malicious domains"

        data = client.post("/analyze/qr", json={"data": "https://malicious-site.com/"}).json()
        assert data["is_malicious"] is False

    def test_remove_unknown_domain(self, client):
        response = client.request(
            "DELETE", "/admin/malicious-domains", json={"domain": "never-listed.example"}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Domain not found"

    def test_blank_domain_rejected(self, client):
        response = client.post("/admin/malicious-domains", json={"domain": "  "})
        assert response.status_code == 400

    def test_add_phishing_pattern(self, client):
        response = client.post("/admin/phishing-patterns", json={"pattern": "verify-now"})
        assert response.status_code == 200

        data = client.post("/analyze/qr", json={"data": "https://shop.example/verify-now"}).json()
        assert data["is_phishing"] is True

    def test_invalid_pattern_rejected(self, client):
        response = client.post("/admin/phishing-patterns", json={"pattern": "(["})
        assert response.status_code == 400

    def test_add_shortener_domain(self, client):
        response = client.post("/admin/shortener-domains", json={"domain": "rb.gy"})
        assert response.status_code == 200

        data = client.post("/analyze/qr", json={"data": "https://rb.gy/abc"}).json()
        assert data["has_redirect"] is True

    def test_threat_db_stats(self, client):
        response = client.get("/admin/threat-db/stats")
        assert response.status_code == 200
        assert set(response.json()) == {"malicious_domains", "phishing_patterns", "shortener_domains"}

    def test_reload_without_feed(self, client, monkeypatch):
        monkeypatch.setattr(settings, "threat_feed_path", None)
        response = client.post("/admin/threat-db/reload")
        assert response.status_code == 503

    def test_reload_unreadable_feed(self, client, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "threat_feed_path", str(tmp_path / "missing.json"))
        response = client.post("/admin/threat-db/reload")
        assert response.status_code == 503

    def test_reload_from_feed(self, client, monkeypatch, tmp_path):
        feed = tmp_path / "feed.json"
        feed.write_text(json.dumps({"malicious_domains": ["feed.example"]}))
        monkeypatch.setattr(settings, "threat_feed_path", str(feed))

        response = client.post("/admin/threat-db/reload")
        assert response.status_code == 200
        assert response.json() == {
            "malicious_domains": 1,
            "phishing_patterns": 0,
            "shortener_domains": 0,
        }

        data = client.post("/analyze/qr", json={"data": "https://feed.example/"}).json()
        assert data["is_malicious"] is True

    def test_metrics(self, client, sample_safe_url):
        client.post("/analyze/qr", json={"data": sample_safe_url})
        response = client.get("/admin/metrics")
        assert response.status_code == 200
        assert response.json()["counters"]["analysis.total"] >= 1

    def test_admin_requires_token_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "secret")
        assert client.get("/admin/threat-db/stats").status_code == 401

    def test_metrics_for_one_type(self, client, sample_safe_upi):
        client.post("/analyze/qr", json={"data": sample_safe_upi})
        response = client.get("/admin/metrics", params={"data_type": "upi"})
        assert response.status_code == 200
        data = response.json()
        assert data["data_type"] == "upi"
        assert data["counters"]["analysis.upi.total"] >= 1
        assert all(name.startswith("analysis.upi.") for name in data["counters"])

    def test_metrics_unknown_type(self, client):
        response = client.get("/admin/metrics", params={"data_type": "fax"})
        assert response.status_code == 422
