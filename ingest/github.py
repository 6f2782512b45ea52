"""
GitHub ingestion client.
Fetches one issue with everything the metrics aggregator needs (GraphQL), and lists open issues (REST)
for the scheduled bulk run.
"""
import logging
from typing import List, Dict, Any, Optional, Union
import requests
from exceptions import UpstreamFetchError
from normalize.models import IssueSummary
from normalize.util import normalize_issue_summary
from .candidates import PER_PAGE
from .retry import request_with_retries

logger = logging.getLogger(__name__)

# Only cross-reference and duplicate events get a `type` alias; other timeline nodes come back empty.
ISSUE_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    issue(number: $number) {
      title
      body
      author { login }
      authorAssociation
      timelineItems(last: 200) {
        nodes {
          ... on CrossReferencedEvent {
            type: __typename
            source { ... on Issue { number } }
            actor { login }
          }
          ... on MarkedAsDuplicateEvent {
            type: __typename
            actor { login }
          }
        }
      }
      reactions(last: 100) {
        nodes { content }
      }
      comments(last: 100) {
        nodes {
          author { login }
          authorAssociation
          reactions(last: 100) {
            nodes { content }
          }
        }
      }
    }
  }
}
"""


class GitHubClient:
    """Simple GitHub client bound to one repository."""

    def __init__(self, token: str, owner: str, repo: str, base_url: str = None, session: Optional[requests.Session] = None):
        self.token = token
        self.owner = owner
        self.repo = repo
        self.base_url = (base_url or "https://api.github.com").rstrip('/')
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
        })

    def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        resp = request_with_retries(
            self.session, 'POST', f"{self.base_url}/graphql", source='github', json={'query': query, 'variables': variables}
        )
        payload = resp.json()
        errors = payload.get('errors')
        if errors:
            message = '; '.join(str(e.get('message', e)) for e in errors if isinstance(e, dict)) or str(errors)
            raise UpstreamFetchError(f"GitHub GraphQL error: {message}", source='github', status=resp.status_code)
        return payload.get('data') or {}

    def get_issue(self, number: int) -> Dict[str, Any]:
        """Return the raw issue node for the given number, raising UpstreamFetchError if it does not exist."""
        data = self.graphql(ISSUE_QUERY, {'owner': self.owner, 'repo': self.repo, 'number': int(number)})
        issue = (data.get('repository') or {}).get('issue')
        if not issue:
            raise UpstreamFetchError(f"Issue {self.owner}/{self.repo}#{number} not found", source='github')
        return issue

    def _fetch_issue_page(self, page: int, labels: Optional[str], per_page: int) -> List[Dict[str, Any]]:
        params = {"state": "open", "per_page": per_page, "page": page}
        if labels:
            params["labels"] = labels
        url = f"{self.base_url}/repos/{self.owner}/{self.repo}/issues"
        resp = request_with_retries(self.session, 'GET', url, source='github', params=params)
        data = resp.json()
        return data if isinstance(data, list) else []

    def list_open_issues(self, labels: Union[str, List[str], None] = None, per_page: int = PER_PAGE) -> List[IssueSummary]:
        """
        List every open issue carrying all of the given labels. Pull requests are skipped.
        """
        if isinstance(labels, (list, tuple)):
            labels = ','.join(labels)
        issues: List[IssueSummary] = []
        page = 1
        while True:
            data = self._fetch_issue_page(page, labels, per_page)
            issues.extend(normalize_issue_summary(item) for item in data if 'pull_request' not in item)
            if len(data) < per_page:
                break
            page += 1
        logger.debug("Listed %d open issues in %s/%s", len(issues), self.owner, self.repo)
        return issues
