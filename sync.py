"""
Orchestration: fetch -> aggregate -> score -> resolve the work item -> merge -> write back.
Clients are injected; each issue is an independent unit of work.
"""
import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from correlate.linker import resolve_issue_number, resolve_work_item_id
from ingest.ado import build_unscored_scenarios_query
from ingest.candidates import default_cutoff, select_candidates
from normalize.models import IssueMetrics, Score, ScoreCoefficients
from report.merge import build_patch_document
from report.renderer import render_metrics_text
from scoring.metrics import aggregate_issue_metrics
from scoring.utils import compute_score, format_number

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class SyncOutcome:
    """Result of processing one issue."""
    UPDATED = 'updated'
    DRY_RUN = 'dry_run'
    NO_LINK = 'no_link'
    NO_WORK_ITEM = 'no_work_item'
    FAILED = 'failed'

    def __init__(self, issue_number: int, status: str, work_item_id: Optional[int] = None, score: Optional[Score] = None, error: Optional[str] = None):
        self.issue_number = issue_number
        self.status = status
        self.work_item_id = work_item_id
        self.score = score
        self.error = error

    @property
    def ok(self) -> bool:
        return self.status != self.FAILED

    def to_dict(self) -> dict:
        return {
            "issue": self.issue_number,
            "status": self.status,
            "work_item_id": self.work_item_id,
            "score": format_number(self.score.value) if self.score else None,
            "score_version": self.score.version if self.score else None,
            "error": self.error,
        }

    def __repr__(self):
        return f"SyncOutcome(issue_number={self.issue_number}, status={self.status!r}, work_item_id={self.work_item_id})"


def format_metrics(metrics: IssueMetrics) -> str:
    return json.dumps(metrics.to_dict(), sort_keys=False)


class IssueSyncer:
    """
    Syncs GitHub issue metrics into ADO work items.
    ado may be None when dry_run is set; nothing is read from or written to ADO then.
    """

    def __init__(self, github, ado, coefficients: ScoreCoefficients, dry_run: bool = False):
        self.github = github
        self.ado = ado
        self.coefficients = coefficients
        self.dry_run = dry_run

    def score_issue(self, issue_number: int) -> Tuple[IssueMetrics, Score]:
        issue = self.github.get_issue(issue_number)
        metrics = aggregate_issue_metrics(issue_number, issue)
        score = compute_score(metrics, self.coefficients)
        # logged before any write so a failed write-back still leaves a record of the score
        logger.info("Metrics: %s - Score: %s - Version: %s", format_metrics(metrics), format_number(score.value), score.version)
        return metrics, score

    def sync_issue(self, issue_number: int) -> SyncOutcome:
        """
        Process one issue. Upstream failures propagate; a missing cross reference or work item does not.
        """
        logger.info("Retrieving metrics about issue %s and calculating a score...", issue_number)
        metrics, score = self.score_issue(issue_number)
        if self.dry_run:
            logger.info("Dry run, not writing to ADO. %s", render_metrics_text(metrics, score))
            return SyncOutcome(issue_number, SyncOutcome.DRY_RUN, score=score)

        work_item_id = resolve_work_item_id(metrics.body)
        if work_item_id is None:
            logger.info("No ADO link found in the body of issue %s.", issue_number)
            return SyncOutcome(issue_number, SyncOutcome.NO_LINK, score=score)

        work_item = self.ado.get_work_item(work_item_id)
        if work_item is None:
            logger.info("No ADO work item found for ID %s (issue %s).", work_item_id, issue_number)
            return SyncOutcome(issue_number, SyncOutcome.NO_WORK_ITEM, work_item_id=work_item_id, score=score)

        logger.info("Found work item %s. Updating it... Link: %s", work_item.id, self.ado.work_item_url(work_item.id))
        self.ado.update_work_item(work_item.id, build_patch_document(work_item, metrics, score))
        return SyncOutcome(issue_number, SyncOutcome.UPDATED, work_item_id=work_item.id, score=score)

    def _sync_isolated(self, issue_number: int) -> SyncOutcome:
        try:
            return self.sync_issue(issue_number)
        except Exception as exc:
            logger.error("Failed to sync issue %s: %s", issue_number, exc)
            return SyncOutcome(issue_number, SyncOutcome.FAILED, error=str(exc))

    def sync_many(self, issue_numbers: Iterable[int], max_workers: int = DEFAULT_MAX_WORKERS) -> List[SyncOutcome]:
        """
        Process several issues concurrently. A failure is logged and recorded, never raised,
        so one bad issue does not stop the others. Outcomes are returned in input order.
        """
        numbers = list(issue_numbers)
        if not numbers:
            return []
        outcomes = {}
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(numbers)))) as executor:
            futures = {executor.submit(self._sync_isolated, n): n for n in numbers}
            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()
        return [outcomes[n] for n in numbers]


def select_bulk_issue_numbers(github, labels, sample_size: int, now: Optional[datetime] = None) -> List[int]:
    """List open tracked issues and sample the ones not updated in the last day."""
    issues = github.list_open_issues(labels)
    selected = select_candidates(issues, default_cutoff(now), sample_size)
    logger.info("Selected %d of %d open issues for re-scoring.", len(selected), len(issues))
    return [i.number for i in selected]


def _issue_number_for_work_item(ado, work_item_id: int) -> Optional[int]:
    try:
        work_item = ado.get_work_item(work_item_id)
    except Exception as exc:
        logger.error("Failed to read ADO work item %s: %s", work_item_id, exc)
        return None
    if work_item is None:
        return None
    number = resolve_issue_number(work_item.title)
    if number is None:
        logger.info("No GitHub issue found in title for ADO ID: %s Title: %s", work_item_id, work_item.title)
    else:
        logger.info("Found GitHub issue: %s ADO ID: %s Title: %s", number, work_item_id, work_item.title)
    return number


def collect_issue_numbers_for_area_path(
    ado, project: str, area_path: str, score_version: int, max_workers: int = DEFAULT_MAX_WORKERS
) -> List[int]:
    """
    Find active Scenarios under area_path not yet scored at score_version and return the
    GitHub issue numbers their titles reference (deduplicated, ascending).
    """
    ids = ado.query_work_item_ids(build_unscored_scenarios_query(area_path, score_version), project)
    logger.info("Found ids: %s", ids)
    if not ids:
        logger.info("No workitems found in area path %s", area_path)
        return []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(ids)))) as executor:
        numbers = list(executor.map(lambda wid: _issue_number_for_work_item(ado, wid), ids))
    return sorted({n for n in numbers if n is not None and n > 0})


def run_sync(config, github, ado, max_workers: int = DEFAULT_MAX_WORKERS, now: Optional[datetime] = None) -> List[SyncOutcome]:
    """
    Entry point used by the CLI.
    A single explicit issue propagates its errors; bulk runs isolate them per issue.
    """
    syncer = IssueSyncer(github, None if config.dry_run else ado, config.coefficients, dry_run=config.dry_run)
    if config.issue_number:
        logger.info("GitHub issue %s was provided, handling just this one.", config.issue_number)
        return [syncer.sync_issue(config.issue_number)]

    if config.area_path:
        logger.info("Collecting issues linked from area path %s...", config.area_path)
        numbers = collect_issue_numbers_for_area_path(ado, config.ado_project, config.area_path, config.coefficients.version, max_workers)
    else:
        logger.info("No GitHub issue was provided, getting a random list...")
        numbers = select_bulk_issue_numbers(github, config.tracked_labels, config.batch_limit, now)

    outcomes = syncer.sync_many(numbers, max_workers)
    failed = [o.issue_number for o in outcomes if not o.ok]
    if failed:
        logger.warning("%d of %d issues failed: %s", len(failed), len(outcomes), failed)
    return outcomes
