"""
Report renderer: HTML metrics block written into the work item's generated section.
Rendered with Jinja2 from report/templates/metrics.html.j2.
"""

import os
from jinja2 import Environment, FileSystemLoader, select_autoescape
from normalize.models import IssueMetrics, Score
from scoring.utils import format_number

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), 'templates')
METRICS_TEMPLATE = 'metrics.html.j2'

_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(['html', 'xml', 'j2']),
    keep_trailing_newline=True,
)


def render_metrics_report(metrics: IssueMetrics, score: Score) -> str:
    """Render the metrics/score block (the content between the generated-section markers)."""
    tmpl = _env.get_template(METRICS_TEMPLATE)
    return tmpl.render(metrics=metrics, score=score, score_value=format_number(score.value))


def render_metrics_text(metrics: IssueMetrics, score: Score) -> str:
    """Plain one-line summary used in logs and dry runs."""
    r = metrics.reactions
    rc = metrics.reactions_on_comments
    return (
        f"#{metrics.id}: score {format_number(score.value)} (v{score.version}), "
        f"{metrics.unique_users} users, {metrics.nb_comments} comments ({metrics.nb_non_member_comments} non-member), "
        f"reactions {r.positive}+/{r.neutral}~/{r.negative}-, "
        f"comment reactions {rc.positive}+/{rc.neutral}~/{rc.negative}-, "
        f"{metrics.nb_mentions} mentions"
    )
