import pytest
from normalize.models import IssueMetrics, ReactionCounts, Score, WorkItem
from report.merge import (
    END_METRICS_TAG,
    FIELD_DESCRIPTION,
    FIELD_REPRO_STEPS,
    FIELD_SCORE,
    FIELD_WI_TYPE,
    NL,
    START_METRICS_TAG,
    build_patch_document,
    extract_generated_section,
    merge_report,
    select_description_field,
)

REPORT = "<ul><li>Score: 16</li></ul>"

FIELD_TEXTS = [
    "",
    "<div>Customer impact is high.</div>",
    "Intro" + NL + START_METRICS_TAG + NL + "<ul>old</ul>" + END_METRICS_TAG + NL + "<p>Notes after</p>",
    START_METRICS_TAG + "stale" + END_METRICS_TAG,
    "Only an end marker " + END_METRICS_TAG,
    "Quoted " + START_METRICS_TAG + " without an end",
]


def test_first_run_appends_section():
    merged = merge_report("<div>Desc</div>", REPORT)
    assert merged == "<div>Desc</div>" + NL + START_METRICS_TAG + NL + REPORT + END_METRICS_TAG + NL


def test_existing_section_is_replaced_in_place():
    before = "Intro" + NL
    after = NL + "<p>Notes after</p>"
    current = before + START_METRICS_TAG + NL + "<ul>old</ul>" + END_METRICS_TAG + after
    merged = merge_report(current, REPORT)
    assert merged == before + START_METRICS_TAG + NL + REPORT + END_METRICS_TAG + after
    assert "old" not in merged


@pytest.mark.parametrize("text", FIELD_TEXTS)
def test_merge_is_idempotent(text):
    once = merge_report(text, REPORT)
    assert merge_report(once, REPORT) == once


@pytest.mark.parametrize("text", FIELD_TEXTS)
def test_generated_section_holds_latest_report(text):
    merged = merge_report(merge_report(text, "<p>first</p>"), REPORT)
    assert extract_generated_section(merged) == REPORT
    assert merged.count(START_METRICS_TAG) == text.count(START_METRICS_TAG) + (0 if extract_generated_section(text) is not None else 1)


def test_surrounding_content_preserved_byte_for_byte():
    prefix = "<p>Ünïcode &amp; spacing   </p>\n"
    suffix = "\n<table><tr><td>kept</td></tr></table>"
    current = prefix + START_METRICS_TAG + "x" + END_METRICS_TAG + suffix
    merged = merge_report(current, REPORT)
    assert merged.startswith(prefix + START_METRICS_TAG)
    assert merged.endswith(END_METRICS_TAG + suffix)


@pytest.mark.parametrize("value", [None, 42, {"html": "x"}])
def test_missing_or_malformed_field_defaults_to_empty(value):
    assert merge_report(value, REPORT) == merge_report("", REPORT)


def test_extract_generated_section_absent():
    assert extract_generated_section("no markers") is None
    assert extract_generated_section(None) is None


def test_select_description_field():
    assert select_description_field(WorkItem(1, {FIELD_WI_TYPE: "Bug"})) == FIELD_REPRO_STEPS
    assert select_description_field(WorkItem(1, {FIELD_WI_TYPE: "Feature"})) == FIELD_DESCRIPTION
    assert select_description_field(WorkItem(1, {})) == FIELD_DESCRIPTION


def _metrics():
    return IssueMetrics(id=42, unique_users=3, reactions=ReactionCounts(2, 1, 0), nb_comments=4, nb_non_member_comments=1, nb_mentions=2)


def test_build_patch_document_for_bug():
    wi = WorkItem(9, {FIELD_WI_TYPE: "Bug", FIELD_REPRO_STEPS: "<p>Steps</p>", FIELD_DESCRIPTION: "ignored"})
    patch = build_patch_document(wi, _metrics(), Score(16, 2))
    assert patch[0] == {"op": "add", "path": "/fields/" + FIELD_SCORE, "value": "16 (GitHub Score v2)"}
    assert patch[1]["op"] == "add"
    assert patch[1]["path"] == "/fields/" + FIELD_REPRO_STEPS
    assert patch[1]["value"].startswith("<p>Steps</p>" + NL + START_METRICS_TAG)
    assert "<strong>GitHub ID</strong>: 42" in patch[1]["value"]


def test_build_patch_document_legacy_score_and_missing_description():
    wi = WorkItem(9, {FIELD_WI_TYPE: "Scenario"})
    patch = build_patch_document(wi, _metrics(), Score(16, 0))
    assert patch[0]["value"] == "GitHub score = 16"
    assert patch[1]["path"] == "/fields/" + FIELD_DESCRIPTION
    assert patch[1]["value"].startswith(NL + START_METRICS_TAG)
