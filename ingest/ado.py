"""
Azure DevOps work item client: get, patch and WIQL queries over the REST API.
"""
import logging
from typing import List, Dict, Any, Optional
from urllib.parse import quote
import requests
from exceptions import UpstreamFetchError
from normalize.models import WorkItem
from normalize.util import normalize_work_item
from report.merge import FIELD_SCORE
from .retry import request_with_retries

logger = logging.getLogger(__name__)

API_VERSION = "7.0"

FIELD_ID = "System.Id"
FIELD_AREA_PATH = "System.AreaPath"
FIELD_TITLE = "System.Title"
FIELD_STATE = "System.State"

ACTIVE_STATES = ('Proposed', 'Committed', 'Started')
SCENARIO_TYPE = 'Scenario'


def _wiql_literal(value: str) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def build_unscored_scenarios_query(area_path: str, score_version: int) -> str:
    """
    WIQL selecting active Scenarios under area_path that reference a GitHub issue
    and were not yet scored with this coefficient version.
    """
    states = ','.join(_wiql_literal(s) for s in ACTIVE_STATES)
    return (
        f"SELECT [{FIELD_ID}] FROM workitems "
        f"WHERE [System.TeamProject] = @project "
        f"AND [{FIELD_AREA_PATH}] UNDER {_wiql_literal(area_path)} "
        f"AND [{FIELD_STATE}] IN ({states}) "
        f"AND [System.WorkItemType] = {_wiql_literal(SCENARIO_TYPE)} "
        f"AND [{FIELD_TITLE}] CONTAINS 'GitHub #' "
        f"AND [{FIELD_SCORE}] NOT CONTAINS {_wiql_literal('v' + str(score_version))} "
        f"ORDER BY [{FIELD_ID}] asc"
    )


class AdoClient:
    """
    Minimal ADO work item tracking client. Authenticates with a personal access token.
    """

    def __init__(self, org: str, token: str, project: Optional[str] = None, base_url: str = None, session: Optional[requests.Session] = None):
        self.org = org
        self.token = token
        self.project = project
        self.base_url = (base_url or f"https://dev.azure.com/{org}").rstrip('/')
        self.session = session or requests.Session()
        self.session.auth = ('', self.token)
        self.session.headers.update({"Accept": "application/json"})

    def work_item_url(self, work_item_id: int) -> str:
        return f"https://{self.org}.visualstudio.com/_workitems/edit/{work_item_id}"

    def _item_url(self, work_item_id: int) -> str:
        return f"{self.base_url}/_apis/wit/workitems/{int(work_item_id)}"

    def get_work_item(self, work_item_id: int) -> Optional[WorkItem]:
        """Return the work item, or None if it does not exist (or is not visible to the token)."""
        resp = request_with_retries(
            self.session, 'GET', self._item_url(work_item_id), source='ado', allow_status=(404,), params={'api-version': API_VERSION}
        )
        if resp.status_code == 404:
            return None
        return normalize_work_item(resp.json())

    def update_work_item(self, work_item_id: int, patch_document: List[Dict[str, Any]]) -> WorkItem:
        resp = request_with_retries(
            self.session,
            'PATCH',
            self._item_url(work_item_id),
            source='ado',
            params={'api-version': API_VERSION},
            json=patch_document,
            headers={'Content-Type': 'application/json-patch+json'},
        )
        return normalize_work_item(resp.json())

    def query_work_item_ids(self, wiql: str, project: Optional[str] = None) -> List[int]:
        """Run a WIQL query in the given (or default) project and return the matching ids in result order."""
        project = project or self.project
        if not project:
            raise UpstreamFetchError("An ADO project is required to run WIQL queries", source='ado')
        logger.debug("ADO query: %s", wiql)
        url = f"{self.base_url}/{quote(project)}/_apis/wit/wiql"
        resp = request_with_retries(self.session, 'POST', url, source='ado', params={'api-version': API_VERSION}, json={'query': wiql})
        items = resp.json().get('workItems') or []
        return [int(item['id']) for item in items if item.get('id') is not None]
