# ============================================================================
# File: verification/service.py
# Description: Sampled comparison of stored records against gomafia.pro
# ============================================================================
"""
Data verification service.

A verification run samples stored players, clubs and tournaments, fetches
each one's detail page, and compares a few fields. The outcome is stored as
a DataIntegrityReport; when overall accuracy falls below the threshold,
exactly one alert goes out after the report has been saved.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from core.config import settings
from core.exceptions import ParseError, SourceUnavailableError, TransportError
from importer.client import GomafiaClient
from importer.parsers import parse_club_detail, parse_player_detail, parse_tournament_detail
from importer.repository import ImportRepository
from models.base import IntegrityStatus, TriggerType
from models.club import Club
from models.integrity_report import DataIntegrityReport
from models.player import Player
from models.tournament import Tournament
from verification.alerts import AlertSink, LoggingAlertSink

logger = logging.getLogger(__name__)

ELO_TOLERANCE = 1


def _same_text(local: Optional[str], remote: Optional[str]) -> bool:
    return (local or "").strip() == (remote or "").strip()


def compare_player(local: Player, remote) -> List[str]:
    mismatched = []
    if not _same_text(local.name, remote.name):
        mismatched.append("name")
    if remote.elo_rating is not None and abs((local.elo_rating or 0) - remote.elo_rating) > ELO_TOLERANCE:
        mismatched.append("elo_rating")
    return mismatched


def compare_club(local: Club, remote) -> List[str]:
    mismatched = []
    if not _same_text(local.name, remote.name):
        mismatched.append("name")
    if remote.region is not None and local.region != remote.region:
        mismatched.append("region")
    return mismatched


def compare_tournament(local: Tournament, remote) -> List[str]:
    mismatched = []
    if not _same_text(local.name, remote.name):
        mismatched.append("name")
    if remote.stars is not None and local.stars is not None and local.stars != remote.stars:
        mismatched.append("stars")
    return mismatched


@dataclass
class EntityCheck:
    """How to fetch, parse and compare one entity kind."""
    kind: str
    model: Type[Any]
    fetch: Callable[[str], Awaitable[str]]
    parse: Callable[[str, str], Any]
    compare: Callable[[Any, Any], List[str]]


class DataVerificationService:
    """
    Compare a sample of stored records with the live site.

    Accuracy is record-level: a sampled record counts as matched only when
    every compared field agrees. A record whose detail page cannot be
    fetched or parsed counts as a miss.
    """

    def __init__(
        self,
        repository: ImportRepository,
        client: GomafiaClient,
        alert_sink: Optional[AlertSink] = None,
        sample_percent: Optional[float] = None,
        max_sample: Optional[int] = None,
        accuracy_threshold: Optional[float] = None,
        warning_threshold: Optional[float] = None
    ):
        self.repository = repository
        self.client = client
        self.alert_sink = alert_sink or LoggingAlertSink()
        self.sample_percent = settings.VERIFICATION_SAMPLE_PERCENT if sample_percent is None else sample_percent
        self.max_sample = settings.VERIFICATION_MAX_SAMPLE if max_sample is None else max_sample
        self.accuracy_threshold = settings.ACCURACY_THRESHOLD if accuracy_threshold is None else accuracy_threshold
        self.warning_threshold = settings.WARNING_THRESHOLD if warning_threshold is None else warning_threshold

    def checks(self) -> List[EntityCheck]:
        return [
            EntityCheck("players", Player, self.client.fetch_player_detail, parse_player_detail, compare_player),
            EntityCheck("clubs", Club, self.client.fetch_club_detail, parse_club_detail, compare_club),
            EntityCheck(
                "tournaments", Tournament, self.client.fetch_tournament_detail,
                parse_tournament_detail, compare_tournament
            ),
        ]

    def sample_size(self, total: int) -> int:
        if total <= 0:
            return 0
        size = max(1, math.ceil(total * self.sample_percent / 100))
        return min(size, self.max_sample)

    def classify(self, accuracy: float) -> IntegrityStatus:
        if accuracy >= self.accuracy_threshold:
            return IntegrityStatus.OK
        if accuracy >= self.warning_threshold:
            return IntegrityStatus.WARNING
        return IntegrityStatus.CRITICAL

    async def run_data_verification(self, trigger: TriggerType = TriggerType.MANUAL) -> DataIntegrityReport:
        """
        Run one verification and persist its report.

        Raises:
            SourceUnavailableError: the site did not answer the reachability
                check; no report is stored in that case
        """
        try:
            await self.client.ping()
        except TransportError as e:
            logger.error(f"Verification aborted, source unreachable: {e.message}")
            raise SourceUnavailableError(
                "gomafia.pro is unreachable",
                context={"trigger": trigger.value},
                original_exception=e
            )

        results: Dict[str, Dict[str, Any]] = {}
        discrepancies: List[Dict[str, Any]] = []
        total_sampled = 0
        total_matched = 0

        for check in self.checks():
            outcome = await self._verify(check, discrepancies)
            results[check.kind] = outcome
            total_sampled += outcome["sampled"]
            total_matched += outcome["matched"]

        overall = round(total_matched / total_sampled * 100, 2) if total_sampled else 100.0
        status = self.classify(overall)

        report = DataIntegrityReport(
            timestamp=datetime.utcnow(),
            overall_accuracy=overall,
            status=status,
            trigger_type=trigger,
            results=results,
            discrepancies=discrepancies,
        )
        await self.repository.add_report(report)
        await self.repository.commit()

        logger.info(
            f"Verification finished: {overall:.2f}% accuracy ({status.value}), "
            f"{total_matched}/{total_sampled} records matched"
        )

        if overall < self.accuracy_threshold:
            await self._alert(report, total_sampled, total_matched)

        return report

    async def get_latest_report(self) -> Optional[DataIntegrityReport]:
        return await self.repository.latest_report()

    async def _verify(self, check: EntityCheck, discrepancies: List[Dict[str, Any]]) -> Dict[str, Any]:
        total = await self.repository.count(check.model)
        records = await self.repository.sample(check.model, self.sample_size(total))

        matched = 0
        for record in records:
            try:
                html = await check.fetch(record.gomafia_id)
                remote = check.parse(html, record.gomafia_id)
            except (TransportError, ParseError) as e:
                logger.warning(f"Verification of {check.kind} {record.gomafia_id} failed: {e.message}")
                discrepancies.append({
                    "kind": check.kind,
                    "gomafia_id": record.gomafia_id,
                    "error": e.message,
                })
                continue

            mismatched = check.compare(record, remote)
            if mismatched:
                discrepancies.append({
                    "kind": check.kind,
                    "gomafia_id": record.gomafia_id,
                    "fields": mismatched,
                })
            else:
                matched += 1

        accuracy = round(matched / len(records) * 100, 2) if records else 100.0
        return {"accuracy": accuracy, "sampled": len(records), "matched": matched, "total": total}

    async def _alert(self, report: DataIntegrityReport, sampled: int, matched: int) -> None:
        try:
            await self.alert_sink.send_alert(
                "SYSTEM_ALERT",
                f"Data verification {report.status.value}: {report.overall_accuracy:.2f}% accuracy",
                (
                    f"{matched} of {sampled} sampled records match gomafia.pro; "
                    f"threshold is {self.accuracy_threshold:.0f}%."
                ),
                {
                    "report_id": report.id,
                    "overall_accuracy": report.overall_accuracy,
                    "status": report.status.value,
                    "results": report.results,
                },
            )
        except Exception as e:
            logger.error(
                f"Failed to send verification alert: {e}",
                extra={"error_context": {"report_id": report.id}}
            )
