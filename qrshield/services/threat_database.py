"""
Threat intelligence database.
Known malicious domains, phishing URL patterns and link shorteners.

The database is handed to the risk scorer rather than baked into it, so tests
can pass fixtures and production can swap in a fresh feed at runtime.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Union

logger = logging.getLogger(__name__)


class ThreatDatabaseError(Exception):
    """Raised when a threat feed cannot be loaded."""


@dataclass(frozen=True)
class PhishingPattern:
    """A compiled phishing regex and the source text it was built from."""
    source: str
    regex: re.Pattern

    def matches(self, url: str) -> bool:
        return self.regex.search(url) is not None


DEFAULT_MALICIOUS_DOMAINS = [
    "malicious-site.com",
    "phishing-bank.net",
    "fake-payment.org",
    "scam-upi.in",
    "fraudulent-qr.com",
]

# (pattern, case_insensitive)
DEFAULT_PHISHING_PATTERNS = [
    (r"paypal\.com-[a-z0-9]+\.com", True),
    (r"amazon\.com-[a-z0-9]+\.net", True),
    (r"google\.com-[a-z0-9]+\.org", True),
    (r"facebook\.com-[a-z0-9]+\.info", True),
    (r"instagram\.com-[a-z0-9]+\.biz", True),
    (r"whatsapp\.com-[a-z0-9]+\.co", True),
    (r"[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}", False),
    (r"bit\.ly/[a-zA-Z0-9]+", False),
    (r"tinyurl\.com/[a-zA-Z0-9]+", False),
    (r"t\.co/[a-zA-Z0-9]+", False),
]

DEFAULT_SHORTENER_DOMAINS = [
    "bit.ly",
    "tinyurl.com",
    "t.co",
    "goo.gl",
    "ow.ly",
]


def _normalize_domain(domain: str) -> str:
    return domain.strip().lower().rstrip(".")


def _parent_domains(host: str) -> Iterable[str]:
    """Yield host and each of its parent domains: a.b.c -> a.b.c, b.c, c."""
    labels = host.split(".")
    for i in range(len(labels)):
        yield ".".join(labels[i:])


class ThreatDatabase:
    """
    Read-mostly store of threat intelligence used by the URL checks.

    Supports:
    - Exact domain matches (a listed domain also covers its subdomains)
    - Regex patterns matched against the full URL text
    - Link shortener domains
    """

    def __init__(
        self,
        malicious_domains: Iterable[str] = (),
        phishing_patterns: Iterable[Union[str, PhishingPattern]] = (),
        shortener_domains: Iterable[str] = (),
    ):
        self._malicious_domains: Set[str] = set()
        self._phishing_patterns: List[PhishingPattern] = []
        self._shortener_domains: Set[str] = set()

        for domain in malicious_domains:
            self.add_malicious_domain(domain)
        for pattern in phishing_patterns:
            if isinstance(pattern, PhishingPattern):
                self._phishing_patterns.append(pattern)
            elif not self.add_phishing_pattern(pattern):
                logger.warning(f"Skipping invalid phishing pattern: {pattern!r}")
        for domain in shortener_domains:
            self.add_shortener_domain(domain)

    # ============== CONSTRUCTORS ==============

    @classmethod
    def default(cls) -> "ThreatDatabase":
        """Built-in threat data, used when no feed is configured."""
        patterns = [
            PhishingPattern(source=p, regex=re.compile(p, re.I if ci else 0))
            for p, ci in DEFAULT_PHISHING_PATTERNS
        ]
        return cls(
            malicious_domains=DEFAULT_MALICIOUS_DOMAINS,
            phishing_patterns=patterns,
            shortener_domains=DEFAULT_SHORTENER_DOMAINS,
        )

    @classmethod
    def from_dict(cls, feed: Mapping[str, Any]) -> "ThreatDatabase":
        """
        Build a database from a feed mapping:

            {
                "malicious_domains": ["evil.com", ...],
                "phishing_patterns": ["paypal\\.com-[a-z0-9]+\\.com", ...],
                "shortener_domains": ["bit.ly", ...]
            }

        Missing keys mean empty lists; a present key must hold a list of
        strings, even when empty. Feed patterns are case-insensitive.
        """
        if not isinstance(feed, Mapping):
            raise ThreatDatabaseError(
                f"Threat feed must be a JSON object, got {type(feed).__name__}"
            )

        def _string_list(key: str) -> List[str]:
            if key not in feed:
                return []
            values = feed[key]
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise ThreatDatabaseError(f"Threat feed key '{key}' must be a list of strings")
            return values

        return cls(
            malicious_domains=_string_list("malicious_domains"),
            phishing_patterns=_string_list("phishing_patterns"),
            shortener_domains=_string_list("shortener_domains"),
        )

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "ThreatDatabase":
        """Load a feed file written in the from_dict format."""
        try:
            with open(path, "r", encoding="utf-8") as fh:
                feed = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise ThreatDatabaseError(f"Cannot load threat feed {path}: {e}") from e

        db = cls.from_dict(feed)
        logger.info(f"Loaded threat feed from {path}: {db.get_stats()}")
        return db

    def copy(self) -> "ThreatDatabase":
        """Independent copy, for copy-on-write updates."""
        return ThreatDatabase(
            malicious_domains=self._malicious_domains,
            phishing_patterns=self._phishing_patterns,
            shortener_domains=self._shortener_domains,
        )

    # ============== MUTATION ==============

    def add_malicious_domain(self, domain: str) -> bool:
        domain = _normalize_domain(domain)
        if not domain:
            return False
        self._malicious_domains.add(domain)
        return True

    def remove_malicious_domain(self, domain: str) -> bool:
        domain = _normalize_domain(domain)
        if domain not in self._malicious_domains:
            return False
        self._malicious_domains.discard(domain)
        return True

    def add_phishing_pattern(self, pattern: str) -> bool:
        """Add a case-insensitive regex. Returns False if it does not compile."""
        try:
            compiled = re.compile(pattern, re.I)
        except re.error:
            return False
        self._phishing_patterns.append(PhishingPattern(source=pattern, regex=compiled))
        return True

    def add_shortener_domain(self, domain: str) -> bool:
        domain = _normalize_domain(domain)
        if not domain:
            return False
        self._shortener_domains.add(domain)
        return True

    # ============== LOOKUPS ==============

    def is_malicious_domain(self, host: Optional[str]) -> bool:
        if not host:
            return False
        host = _normalize_domain(host)
        return any(d in self._malicious_domains for d in _parent_domains(host))

    def is_shortener(self, host: Optional[str]) -> bool:
        if not host:
            return False
        host = _normalize_domain(host)
        return any(d in self._shortener_domains for d in _parent_domains(host))

    def match_phishing(self, url: str) -> List[PhishingPattern]:
        """Every pattern that matches the URL, in bank order."""
        return [p for p in self._phishing_patterns if p.matches(url)]

    @property
    def malicious_domains(self) -> frozenset:
        return frozenset(self._malicious_domains)

    @property
    def phishing_patterns(self) -> tuple:
        return tuple(self._phishing_patterns)

    @property
    def shortener_domains(self) -> frozenset:
        return frozenset(self._shortener_domains)

    def get_stats(self) -> Dict[str, int]:
        return {
            "malicious_domains": len(self._malicious_domains),
            "phishing_patterns": len(self._phishing_patterns),
            "shortener_domains": len(self._shortener_domains),
        }
