"""
Correlate package: resolve GitHub issue <-> ADO work item cross references.
"""

from .linker import resolve_work_item_id, resolve_issue_number

__all__ = ["resolve_work_item_id", "resolve_issue_number"]
