import unittest
from normalize.models import IssueMetrics, ReactionCounts, Score
from report.renderer import render_metrics_report, render_metrics_text


def _metrics():
    return IssueMetrics(
        id=1234,
        body='AB#1 <script>',
        unique_users=3,
        mentions={'MarkedAsDuplicateEvent': 1, 'CrossReferencedEvent': 2},
        nb_mentions=3,
        reactions=ReactionCounts(2, 1, 4),
        reactions_on_comments=ReactionCounts(5, 0, 1),
        nb_comments=4,
        nb_non_member_comments=1,
    )


class TestRenderMetricsReport(unittest.TestCase):
    def test_lists_every_metric(self):
        html = render_metrics_report(_metrics(), Score(16.0, 2))
        self.assertTrue(html.lstrip().startswith('<ul>'))
        self.assertIn('<li><strong>GitHub ID</strong>: 1234</li>', html)
        self.assertIn('<li><strong>Score</strong>: 16 (Version: 2)</li>', html)
        self.assertIn('<li><strong>Unique users</strong>: 3</li>', html)
        self.assertIn('<li><strong>All comments</strong>: 4</li>', html)
        self.assertIn('<li><strong>Non-member comments</strong>: 1</li>', html)
        self.assertIn('<strong>Reactions</strong>: 2 &#128512; / 4 &#128528; / 1 &#128530;', html)
        self.assertIn('<strong>Reactions on comments</strong>: 5 &#128512; / 1 &#128528; / 0 &#128530;', html)
        self.assertIn('<strong>Mentions</strong>: 3 (CrossReferencedEvent: 2, MarkedAsDuplicateEvent: 1)', html)

    def test_body_is_not_rendered(self):
        html = render_metrics_report(_metrics(), Score(1, 0))
        self.assertNotIn('script', html)

    def test_no_mentions_breakdown_when_empty(self):
        html = render_metrics_report(IssueMetrics(id=1), Score(0, 0))
        self.assertIn('<li><strong>Mentions</strong>: 0</li>', html)

    def test_render_is_stable(self):
        self.assertEqual(render_metrics_report(_metrics(), Score(16, 2)), render_metrics_report(_metrics(), Score(16, 2)))

    def test_text_summary(self):
        text = render_metrics_text(_metrics(), Score(16, 2))
        self.assertIn('#1234: score 16 (v2)', text)
        self.assertIn('4 comments (1 non-member)', text)


if __name__ == '__main__':
    unittest.main()
