"""
Normalization utility helpers.
Small helpers to turn raw GitHub/ADO payloads into normalize.models entities.
"""
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from normalize.models import IssueSummary, WorkItem


def parse_github_timestamp(value: Optional[str]) -> datetime:
    """Parse an ISO-8601 timestamp such as '2024-03-01T12:00:00Z' into an aware UTC datetime.
    Missing values map to the epoch so such issues always count as stale.
    """
    if not value:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _label_names(raw_labels) -> list:
    names = []
    for label in raw_labels or []:
        name = label.get('name') if isinstance(label, dict) else label
        if name:
            names.append(str(name))
    return names


def normalize_issue_summary(raw: Dict[str, Any]) -> IssueSummary:
    """Create an IssueSummary from a REST 'list repository issues' entry."""
    return IssueSummary(
        number=int(raw.get('number')),
        title=raw.get('title') or '',
        updated_at=parse_github_timestamp(raw.get('updated_at')),
        labels=_label_names(raw.get('labels')),
    )


def normalize_work_item(raw: Dict[str, Any]) -> WorkItem:
    """Create a WorkItem from an ADO work item payload. Missing fields map to an empty dict."""
    fields = raw.get('fields') if isinstance(raw.get('fields'), dict) else {}
    return WorkItem(id=int(raw.get('id')), fields=dict(fields))
