"""
Cross-reference resolution between GitHub issues and ADO work items.
- issue body -> work item id, written as AB#12345 (the Azure Boards GitHub integration syntax)
- work item title -> GitHub issue number, written as "GitHub #123"
When several references are present the last one wins: issues get re-linked over their lifetime
and the final reference is the current one.
"""
import re
from typing import List, Optional

WORK_ITEM_REF_PATTERN = re.compile(r"AB#([0-9]+)")
# the trailing non-digit keeps "GitHub #12" from matching a prefix of a longer number
ISSUE_REF_PATTERN = re.compile(r"GitHub #([0-9]+)[^0-9]", re.IGNORECASE)


def find_work_item_refs(text: Optional[str]) -> List[int]:
    """Return every AB#<id> reference in text, in order of appearance."""
    if not text:
        return []
    return [int(m.group(1)) for m in WORK_ITEM_REF_PATTERN.finditer(text)]


def find_issue_refs(text: Optional[str]) -> List[int]:
    if not text:
        return []
    return [int(m.group(1)) for m in ISSUE_REF_PATTERN.finditer(text)]


def resolve_work_item_id(issue_body: Optional[str]) -> Optional[int]:
    """
    Return the work item id of the last AB#<digits> reference in the issue body, or None.
    """
    refs = find_work_item_refs(issue_body)
    return refs[-1] if refs else None


def resolve_issue_number(work_item_title: Optional[str]) -> Optional[int]:
    """
    Return the GitHub issue number of the last "GitHub #<digits>" reference in a work item title, or None.
    """
    refs = find_issue_refs(work_item_title)
    return refs[-1] if refs else None
