"""
CLI entry point for issue-score-sync. Wires the pipeline: GitHub -> metrics -> score -> ADO work item.

Runs in one of three modes:
- a single issue (--issue, GH_TEST_ID, or the issue of the triggering GitHub Actions event)
- an ADO area path (--area-path): re-scores issues linked from Scenarios not yet scored at the current version
- bulk (default): a random sample of tracked open issues not updated in the last day, since new reactions
  do not fire issue events
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from exceptions import ConfigurationError, SyncError
from ingest.ado import AdoClient
from ingest.github import GitHubClient
from ingest.retry import configure_retry
from settings import load_config
from sync import DEFAULT_MAX_WORKERS, run_sync

logger = logging.getLogger(__name__)


def _print_json(obj):
    print(json.dumps(obj, indent=2, default=str))


def _summarize(outcomes) -> dict:
    summary = {}
    for o in outcomes:
        summary[o.status] = summary.get(o.status, 0) + 1
    return summary


def _configure_logging(level_name: str):
    level = getattr(logging, (level_name or 'INFO').upper(), None)
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level: {level_name}")
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync GitHub issue engagement scores into Azure DevOps work items")
    parser.add_argument("--issue", type=int, default=None, help="GitHub issue number to process (overrides GH_TEST_ID)")
    parser.add_argument("--area-path", type=str, default=None, help="ADO area path whose unscored Scenarios should be re-scored (overrides ADO_AREA_PATH)")
    parser.add_argument("--labels", type=str, default=None, help="Comma-separated tracked labels for bulk mode (overrides GH_TRACKED_LABELS)")
    parser.add_argument("--batch-limit", type=int, default=None, help="Number of issues sampled in bulk mode (overrides BATCH_LIMIT)")
    parser.add_argument("--dry-run", action="store_true", help="Compute and log scores without writing to ADO (same as ONLY_TEST_GH)")
    parser.add_argument("--coefficients", type=str, default=None, help="Path to a coefficients YAML file (default: config/coefficients.yaml)")
    parser.add_argument("--max-workers", type=int, default=DEFAULT_MAX_WORKERS, help="Issues processed concurrently in bulk mode")
    parser.add_argument("--log-level", type=str, default=os.getenv("LOG_LEVEL", "INFO"), help="Logging level (default: LOG_LEVEL or INFO)")
    parser.add_argument("--summary", action="store_true", help="Print a JSON summary of the outcomes when done")
    # retry/backoff knobs: optional CLI overrides. Environment variables SYNC_MAX_RETRIES, SYNC_BACKOFF_BASE,
    # SYNC_BACKOFF_JITTER, SYNC_MAX_BACKOFF may also be used to set defaults.
    parser.add_argument("--max-retries", type=int, default=None, help="Maximum attempts per HTTP request (overrides SYNC_MAX_RETRIES env)")
    parser.add_argument("--backoff-base", type=float, default=None, help="Base backoff seconds (overrides SYNC_BACKOFF_BASE env)")
    parser.add_argument("--backoff-jitter", type=float, default=None, help="Jitter seconds added to backoff (overrides SYNC_BACKOFF_JITTER env)")
    parser.add_argument("--max-backoff", type=float, default=None, help="Maximum backoff cap in seconds (overrides SYNC_MAX_BACKOFF env)")
    return parser


def _labels_override(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [part.strip() for part in value.split(',') if part.strip()]


def _load_config_from_args(args):
    return load_config(
        coefficients_path=args.coefficients,
        issue_number=args.issue,
        area_path=args.area_path,
        tracked_labels=_labels_override(args.labels),
        batch_limit=args.batch_limit,
        dry_run=True if args.dry_run else None,
    )


def build_clients(config):
    """Create the GitHub and ADO clients for this run. No ADO client is built for dry runs without an area path."""
    github = GitHubClient(config.github_token, config.github_owner, config.github_repo)
    ado = None
    if config.ado_org and config.ado_token:
        ado = AdoClient(config.ado_org, config.ado_token, project=config.ado_project or None)
    return github, ado


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        _configure_logging(args.log_level)
        # Apply runtime retry/backoff configuration (CLI flags take precedence over environment variables)
        configure_retry(max_retries=args.max_retries, backoff_base=args.backoff_base, backoff_jitter=args.backoff_jitter, max_backoff=args.max_backoff)
        config = _load_config_from_args(args)
    except ConfigurationError as exc:
        parser.error(str(exc))

    github, ado = build_clients(config)
    try:
        outcomes = run_sync(config, github, ado, max_workers=args.max_workers)
    except SyncError as exc:
        logger.error("Error: %s", exc)
        return 1
    except Exception:
        logger.exception("Unexpected error")
        return 1

    if args.summary:
        _print_json({'outcomes': _summarize(outcomes), 'issues': [o.to_dict() for o in outcomes]})
    logger.info("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
