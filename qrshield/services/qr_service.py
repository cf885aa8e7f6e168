"""
QR analysis service.

Wraps the analysis pipeline with the state a scanner integration needs:
the injected threat database, detection callbacks and running statistics.
"""

from typing import Callable, Dict, List, Optional

from qrshield.config import settings
from qrshield.pipelines.qr_pipeline import analyze_qr, default_threat_database
from qrshield.schemas.qr_schemas import (
    QRPayload,
    QRSecurityAnalysis,
    RiskLevel,
    ScanStatistics,
)
from qrshield.services.threat_database import ThreatDatabase, ThreatDatabaseError
from qrshield.utils.logging_config import StructuredLogger, payload_preview
from qrshield.utils.risk_levels import is_at_least

logger = StructuredLogger(__name__)

DetectionCallback = Callable[[QRPayload, QRSecurityAnalysis], None]


class QRAnalysisService:
    def __init__(self, threat_db: Optional[ThreatDatabase] = None):
        self._threat_db = threat_db if threat_db is not None else default_threat_database()
        self._callbacks: List[DetectionCallback] = []
        self.reset_statistics()

    # ============== THREAT DATA ==============

    @property
    def threat_database(self) -> ThreatDatabase:
        return self._threat_db

    def update_threat_database(self, threat_db: ThreatDatabase):
        """Swap in a new database; analyses already running keep the old one."""
        self._threat_db = threat_db
        logger.info("Threat database updated", **threat_db.get_stats())

    # ============== ANALYSIS ==============

    def analyze(self, text: str) -> QRSecurityAnalysis:
        """Analyse decoded text without touching statistics or callbacks."""
        return analyze_qr(text, self._threat_db)

    def analyze_payload(self, payload: QRPayload) -> QRSecurityAnalysis:
        """Analyse a scanned payload, record it and notify detection callbacks."""
        analysis = self.analyze(payload.data)
        self._record(analysis)

        if is_at_least(analysis.risk_level, RiskLevel.HIGH):
            logger.warning(
                "High risk QR code detected",
                data_type=analysis.data_type.value,
                risk_score=analysis.risk_score,
                threats=analysis.threats,
                preview=payload_preview(payload.data),
            )

        self._notify(payload, analysis)
        return analysis

    # ============== CALLBACKS ==============

    def on_detection(self, callback: DetectionCallback):
        self._callbacks.append(callback)

    def remove_detection_callback(self, callback: DetectionCallback):
        """Remove a previously registered callback. Unknown callbacks are ignored."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def _notify(self, payload: QRPayload, analysis: QRSecurityAnalysis):
        for callback in list(self._callbacks):
            try:
                callback(payload, analysis)
            except Exception as e:
                logger.error(
                    "QR detection callback failed",
                    exc_info=True,
                    callback=getattr(callback, "__name__", repr(callback)),
                    error=str(e),
                )

    # ============== STATISTICS ==============

    def _record(self, analysis: QRSecurityAnalysis):
        self._total_scanned += 1
        self._risk_score_sum += analysis.risk_score
        if is_at_least(analysis.risk_level, RiskLevel.HIGH):
            self._malicious_detected += 1
        if analysis.is_phishing:
            self._phishing_attempts += 1
        key = analysis.data_type.value
        self._by_data_type[key] = self._by_data_type.get(key, 0) + 1

    @property
    def statistics(self) -> ScanStatistics:
        average = self._risk_score_sum / self._total_scanned if self._total_scanned else 0.0
        return ScanStatistics(
            total_scanned=self._total_scanned,
            malicious_detected=self._malicious_detected,
            phishing_attempts=self._phishing_attempts,
            average_risk_score=round(average, 2),
            by_data_type=dict(self._by_data_type),
        )

    def reset_statistics(self):
        self._total_scanned = 0
        self._malicious_detected = 0
        self._phishing_attempts = 0
        self._risk_score_sum = 0
        self._by_data_type: Dict[str, int] = {}


def load_configured_threat_database() -> ThreatDatabase:
    """The feed named by settings.threat_feed_path, or the built-in data."""
    if not settings.threat_feed_path:
        return ThreatDatabase.default()
    return ThreatDatabase.from_json_file(settings.threat_feed_path)


def _create_service() -> QRAnalysisService:
    try:
        threat_db = load_configured_threat_database()
    except ThreatDatabaseError as e:
        logger.error("Falling back to built-in threat data", error=str(e))
        threat_db = ThreatDatabase.default()
    return QRAnalysisService(threat_db)


# Global instance
qr_service = _create_service()
