"""Tests for the QR analysis service."""

import pytest

from qrshield.config import settings
from qrshield.schemas.qr_schemas import QRPayload, RiskLevel
from qrshield.services.qr_service import QRAnalysisService, load_configured_threat_database
from qrshield.services.threat_database import ThreatDatabaseError


class TestDetectionCallbacks:
    """Tests for callback registration and notification."""

    @pytest.fixture
    def service(self, threat_db):
        return QRAnalysisService(threat_db)

    def test_callback_receives_payload_and_analysis(self, service, sample_safe_url):
        seen = []
        service.on_detection(lambda payload, analysis: seen.append((payload, analysis)))

        payload = QRPayload(data=sample_safe_url)
        analysis = service.analyze_payload(payload)

        assert seen == [(payload, analysis)]

    def test_removed_callback_not_called(self, service, sample_safe_url):
        seen = []

        def callback(payload, analysis):
            seen.append(analysis)

        service.on_detection(callback)
        service.remove_detection_callback(callback)
        service.analyze_payload(QRPayload(data=sample_safe_url))
        assert seen == []

    def test_removing_unknown_callback_is_ignored(self, service):
        service.remove_detection_callback(lambda p, a: None)

    def test_failing_callback_does_not_stop_others(self, service, sample_fraud_upi):
        seen = []

        def broken(payload, analysis):
            raise RuntimeError("boom")

        service.on_detection(broken)
        service.on_detection(lambda payload, analysis: seen.append(analysis.risk_level))

        analysis = service.analyze_payload(QRPayload(data=sample_fraud_upi))
        assert analysis.risk_level == RiskLevel.CRITICAL
        assert seen == [RiskLevel.CRITICAL]


class TestStatistics:
    """Tests for running scan statistics."""

    def test_starts_empty(self, threat_db):
        stats = QRAnalysisService(threat_db).statistics
        assert stats.total_scanned == 0
        assert stats.average_risk_score == 0.0
        assert stats.by_data_type == {}

    def test_counts_scans(self, threat_db, sample_safe_url, sample_shortened_url, sample_fraud_upi):
        service = QRAnalysisService(threat_db)
        for data in (sample_fraud_upi, sample_safe_url, sample_shortened_url):
            service.analyze_payload(QRPayload(data=data))

        stats = service.statistics
        assert stats.total_scanned == 3
        assert stats.malicious_detected == 2
        assert stats.phishing_attempts == 1
        assert stats.average_risk_score == 55.0
        assert stats.by_data_type == {"upi": 1, "url": 2}

    def test_plain_analyze_is_not_recorded(self, threat_db, sample_safe_url):
        service = QRAnalysisService(threat_db)
        service.analyze(sample_safe_url)
        assert service.statistics.total_scanned == 0

    def test_reset(self, threat_db, sample_safe_url):
        service = QRAnalysisService(threat_db)
        service.analyze_payload(QRPayload(data=sample_safe_url))
        service.reset_statistics()
        assert service.statistics.total_scanned == 0


class TestThreatDatabaseUpdates:
    """Tests for swapping the service's threat data."""

    def test_update_changes_results(self, threat_db):
        service = QRAnalysisService(threat_db)
        url = "https://new-threat.example/"
        assert service.analyze(url).is_malicious is False

        updated = threat_db.copy()
        updated.add_malicious_domain("new-threat.example")
        service.update_threat_database(updated)

        assert service.threat_database is updated
        assert service.analyze(url).is_malicious is True

    def test_configured_feed_loaded(self, tmp_path, monkeypatch):
        feed = tmp_path / "feed.json"
        feed.write_text('{"malicious_domains": ["feed-only.example"]}')
        monkeypatch.setattr(settings, "threat_feed_path", str(feed))

        db = load_configured_threat_database()
        assert db.is_malicious_domain("feed-only.example") is True

    def test_configured_feed_missing(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "threat_feed_path", str(tmp_path / "missing.json"))
        with pytest.raises(ThreatDatabaseError):
            load_configured_threat_database()

    def test_no_feed_means_built_in_data(self, monkeypatch):
        monkeypatch.setattr(settings, "threat_feed_path", None)
        assert load_configured_threat_database().get_stats()["malicious_domains"] == 5
