"""
Merge the generated metrics report into a work item's rich-text field and build the ADO patch document.

The generated section is delimited by START_METRICS_TAG / END_METRICS_TAG. Repeat runs replace only
that section; everything before and after it is preserved byte for byte.
"""
from typing import Any, Dict, List, Optional
from normalize.models import IssueMetrics, Score, WorkItem
from scoring.utils import format_score_field
from report.renderer import render_metrics_report

FIELD_WI_TYPE = "Microsoft.VSTS.CMMI.TaskType"
FIELD_REPRO_STEPS = "Microsoft.VSTS.TCM.ReproSteps"
FIELD_DESCRIPTION = "System.Description"
FIELD_SCORE = "Microsoft.VSTS.Common.CustomString03"

START_METRICS_TAG = "------------- GitHub Metrics (auto-generated) -------------"
END_METRICS_TAG = "------------- End GitHub Metrics --------------------------"
NL = "<br/>"


def _as_text(value: Any) -> str:
    # a missing or non-text field is treated as empty so the merge always succeeds
    return value if isinstance(value, str) else ""


def _find_section(text: str):
    """Return (start, end) indexes of the last marker pair, or None if either marker is missing.
    The generated section is always the last pair; earlier marker text is left alone.
    """
    end = text.rfind(END_METRICS_TAG)
    if end < 0:
        return None
    start = text.rfind(START_METRICS_TAG, 0, end)
    if start < 0:
        return None
    return start, end


def merge_report(current: Optional[str], report: str) -> str:
    """
    Return the new field content with report placed in the generated section.

    First run (markers absent): the section is appended after a line break.
    Later runs: the existing section is replaced in place.
    """
    text = _as_text(current)
    section = START_METRICS_TAG + NL + report + END_METRICS_TAG
    found = _find_section(text)
    if found is None:
        return text + NL + section + NL
    start, end = found
    return text[:start] + section + text[end + len(END_METRICS_TAG):]


def extract_generated_section(text: Optional[str]) -> Optional[str]:
    """Return the report currently stored between the markers, or None."""
    text = _as_text(text)
    found = _find_section(text)
    if found is None:
        return None
    start, end = found
    body = text[start + len(START_METRICS_TAG):end]
    return body[len(NL):] if body.startswith(NL) else body


def select_description_field(work_item: WorkItem) -> str:
    """Bugs keep their details in Repro Steps, every other type in Description."""
    if work_item.fields.get(FIELD_WI_TYPE) == "Bug":
        return FIELD_REPRO_STEPS
    return FIELD_DESCRIPTION


def build_patch_document(work_item: WorkItem, metrics: IssueMetrics, score: Score) -> List[Dict[str, Any]]:
    """
    Build the JSON patch for the work item: the score field and the merged description field.
    """
    field_name = select_description_field(work_item)
    merged = merge_report(work_item.fields.get(field_name), render_metrics_report(metrics, score))
    return [
        {"op": "add", "path": "/fields/" + FIELD_SCORE, "value": format_score_field(score)},
        {"op": "add", "path": "/fields/" + field_name, "value": merged},
    ]
