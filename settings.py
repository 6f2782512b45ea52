"""
Runtime configuration, read once from the environment (and CLI overrides) and passed down explicitly.

GH_PAT             GitHub token with "repo" scope (GITHUB_TOKEN is accepted as a fallback)
GH_OWNER, GH_REPO  repository whose issues are scored, e.g. MicrosoftEdge / WebView2Feedback
GH_TRACKED_LABELS  comma-separated labels marking tracked issues (bulk mode)
GH_TEST_ID         issue number to process; omit to sample stale open issues
ADO_ORG, ADO_PAT   Azure DevOps organization and token with "Work Items - Read & Write" scope
ADO_PROJECT        ADO project, needed for --area-path queries
ADO_AREA_PATH      optional area path; re-scores the issues linked from its Scenarios
BATCH_LIMIT        number of issues sampled in bulk mode (default 20)
ONLY_TEST_GH       compute and log scores without writing to ADO
COEFF_*            score coefficient overrides, see scoring.utils.COEFFICIENT_ENV_VARS
"""
import json
import logging
import os
from typing import Optional, Mapping, List
from exceptions import ConfigurationError
from ingest.candidates import NB_OF_ISSUES
from normalize.models import ScoreCoefficients
from scoring.utils import load_coefficients

logger = logging.getLogger(__name__)

TRUTHY = ('1', 'true', 'yes', 'on')


def _flag(value: Optional[str]) -> bool:
    return (value or '').strip().lower() in TRUTHY


def _optional_int(name: str, value: Optional[str]) -> Optional[int]:
    if value is None or str(value).strip() == '':
        return None
    try:
        return int(str(value).strip().lstrip('#'))
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def issue_number_from_event(env: Mapping[str, str]) -> Optional[int]:
    """
    Return the issue number of the GitHub Actions event that triggered this run, if any.
    Scheduled and manual runs carry no issue, so they return None.
    """
    if not _flag(env.get('GITHUB_ACTIONS')):
        return None
    path = env.get('GITHUB_EVENT_PATH')
    if not path or not os.path.exists(path):
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            event = json.load(f)
    except (OSError, ValueError) as ex:
        raise ConfigurationError(f"Failed to read GitHub event payload {path}: {ex}")
    issue = event.get('issue') if isinstance(event, dict) else None
    if isinstance(issue, dict) and issue.get('number') is not None:
        return int(issue['number'])
    return None


class SyncConfig:
    """
    Validated settings for one run.
    """
    def __init__(
        self,
        github_token: str,
        github_owner: str,
        github_repo: str,
        ado_org: str = '',
        ado_token: str = '',
        ado_project: str = '',
        tracked_labels: Optional[List[str]] = None,
        issue_number: Optional[int] = None,
        area_path: str = '',
        batch_limit: int = NB_OF_ISSUES,
        dry_run: bool = False,
        coefficients: Optional[ScoreCoefficients] = None,
    ):
        self.github_token = github_token
        self.github_owner = github_owner
        self.github_repo = github_repo
        self.ado_org = ado_org
        self.ado_token = ado_token
        self.ado_project = ado_project
        self.tracked_labels = tracked_labels or []
        self.issue_number = issue_number
        self.area_path = area_path
        self.batch_limit = batch_limit
        self.dry_run = dry_run
        self.coefficients = coefficients or ScoreCoefficients()

    def validate(self):
        """Raise ConfigurationError naming every missing setting."""
        missing = []
        if not self.github_token:
            missing.append('GH_PAT')
        if not self.github_owner:
            missing.append('GH_OWNER')
        if not self.github_repo:
            missing.append('GH_REPO')
        if not self.dry_run or self.area_path:
            if not self.ado_org:
                missing.append('ADO_ORG')
            if not self.ado_token:
                missing.append('ADO_PAT')
        if self.area_path and not self.ado_project:
            missing.append('ADO_PROJECT (required with an area path)')
        if missing:
            raise ConfigurationError('Missing required settings: ' + ', '.join(missing))
        if self.batch_limit < 0:
            raise ConfigurationError(f"BATCH_LIMIT must be non-negative, got {self.batch_limit}")
        return self


def _labels(value: Optional[str]) -> List[str]:
    return [part.strip() for part in (value or '').split(',') if part.strip()]


def load_config(env: Optional[Mapping[str, str]] = None, coefficients_path: Optional[str] = None, **overrides) -> SyncConfig:
    """
    Read every setting from env (defaults to os.environ), apply non-None overrides (CLI flags) and validate.
    An issue from the triggering GitHub Actions event takes precedence over GH_TEST_ID.
    """
    env = os.environ if env is None else env
    issue_number = issue_number_from_event(env)
    if issue_number is None:
        issue_number = _optional_int('GH_TEST_ID', env.get('GH_TEST_ID'))
    batch_limit = _optional_int('BATCH_LIMIT', env.get('BATCH_LIMIT'))

    config = SyncConfig(
        github_token=env.get('GH_PAT') or env.get('GITHUB_TOKEN') or '',
        github_owner=env.get('GH_OWNER') or '',
        github_repo=env.get('GH_REPO') or '',
        ado_org=env.get('ADO_ORG') or '',
        ado_token=env.get('ADO_PAT') or '',
        ado_project=env.get('ADO_PROJECT') or '',
        tracked_labels=_labels(env.get('GH_TRACKED_LABELS')),
        issue_number=issue_number,
        area_path=env.get('ADO_AREA_PATH') or '',
        batch_limit=NB_OF_ISSUES if batch_limit is None else batch_limit,
        dry_run=_flag(env.get('ONLY_TEST_GH')),
        coefficients=load_coefficients(coefficients_path, env=env),
    )
    for name, value in overrides.items():
        if not hasattr(config, name):
            raise ConfigurationError(f"Unknown setting: {name}")
        if value is not None:
            setattr(config, name, value)
    return config.validate()
