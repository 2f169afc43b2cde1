"""
Scan Orchestrator

Runs the probes one after another, scores the result, asks for
recommendations and persists the record:

    received → probing → scoring → recommending → persisting → completed
        └─→ error (malformed input only)

Once probing has started every step runs to completion. A failed database
write is logged and the record is still returned, with id=None.
"""
import asyncio
import logging
from enum import Enum
from typing import Optional

from db import save_scan
from models import ScanRecord
from probes import check_ssl_and_headers, check_vulnerabilities, check_dns, check_whois
from recommendations import RecommendationGenerator
from scoring import calculate_security_score
from security import audit_logger
from validators import InvalidTargetError, normalize_url, private_targets_blocked, is_safe_target

logger = logging.getLogger(__name__)


class ScanPhase(str, Enum):
    RECEIVED = "received"
    PROBING = "probing"
    SCORING = "scoring"
    RECOMMENDING = "recommending"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    ERROR = "error"


class SecurityScan:
    """One scan request. Not reusable."""

    def __init__(
        self,
        raw_url: str,
        user_id: Optional[str] = None,
        recommender: Optional[RecommendationGenerator] = None
    ):
        self.raw_url = raw_url
        self.user_id = user_id
        self.recommender = recommender or RecommendationGenerator()
        self.phase = ScanPhase.RECEIVED
        self.url: Optional[str] = None

    def _update_phase(self, phase: ScanPhase):
        self.phase = phase
        logger.info(f"Scan of {self.url or self.raw_url}: phase → {phase.value}")

    async def _validate(self) -> str:
        try:
            url = normalize_url(self.raw_url)
            if private_targets_blocked() and not await asyncio.to_thread(is_safe_target, url):
                raise InvalidTargetError(f"Target not allowed: {url}")
        except InvalidTargetError:
            self._update_phase(ScanPhase.ERROR)
            raise
        return url

    async def execute(self) -> ScanRecord:
        """
        Run the full pipeline.

        Raises:
            InvalidTargetError: URL missing, malformed or blocked. Nothing is
                probed or persisted in that case.
        """
        self.url = await self._validate()
        logger.info(f"Starting scan for URL: {self.url}")

        self._update_phase(ScanPhase.PROBING)
        ssl, headers = await check_ssl_and_headers(self.url)
        vulnerabilities = await check_vulnerabilities(self.url)
        dns = await check_dns(self.url)
        whois = await check_whois(self.url)

        self._update_phase(ScanPhase.SCORING)
        score = calculate_security_score(ssl, headers, vulnerabilities)

        self._update_phase(ScanPhase.RECOMMENDING)
        recommendations = await self.recommender.generate(
            self.url, score, ssl, headers, vulnerabilities
        )

        record = ScanRecord(
            url=self.url,
            score=score,
            ssl=ssl,
            headers=headers,
            vulnerabilities=vulnerabilities,
            dns=dns,
            whois=whois,
            recommendations=recommendations,
            owner=self.user_id,
        )

        self._update_phase(ScanPhase.PERSISTING)
        try:
            record.id = await save_scan(record)
        except Exception:
            logger.exception(f"Error storing scan results for {self.url}")
        else:
            audit_logger.log_scan_stored(scan_id=record.id, url=self.url, user_id=self.user_id)

        self._update_phase(ScanPhase.COMPLETED)
        logger.info(f"Scan completed for {self.url} with score: {score}")
        return record
