"""
Metrics aggregation.
Turns a GitHub issue payload (GraphQL shape, see ingest.github.ISSUE_QUERY) into an IssueMetrics record.
"""
from typing import List, Dict, Any, Optional
from normalize.models import IssueMetrics, ReactionCounts

POSITIVE_REACTIONS = frozenset(['THUMBS_UP', 'HEART', 'HOORAY', 'LAUGH', 'ROCKET'])
NEGATIVE_REACTIONS = frozenset(['CONFUSED', 'THUMBS_DOWN'])

# timeline events counted as mentions; they are the only types ISSUE_QUERY asks a __typename for
MENTION_EVENT_TYPES = ('CrossReferencedEvent', 'MarkedAsDuplicateEvent')

NON_MEMBER_ASSOCIATION = 'NONE'


def _nodes(connection: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Return the node list of a GraphQL connection, tolerating null connections and null nodes."""
    if not isinstance(connection, dict):
        return []
    return [n for n in (connection.get('nodes') or []) if isinstance(n, dict)]


def _login(actor: Optional[Dict[str, Any]]) -> Optional[str]:
    # deleted accounts come back as a null actor ("ghost"); None is their shared identity
    if not isinstance(actor, dict):
        return None
    return actor.get('login')


def process_reactions(reactions) -> ReactionCounts:
    """
    Classify reactions into positive/negative/neutral.
    Accepts either a GraphQL connection ({'nodes': [...]}) or a plain list of nodes.
    Anything outside the positive and negative sets (EYES, ...) is neutral.
    """
    nodes = reactions if isinstance(reactions, list) else _nodes(reactions)
    counts = ReactionCounts()
    for reaction in nodes:
        content = reaction.get('content') if isinstance(reaction, dict) else reaction
        if content in POSITIVE_REACTIONS:
            counts.positive += 1
        elif content in NEGATIVE_REACTIONS:
            counts.negative += 1
        else:
            counts.neutral += 1
    return counts


def _accumulate_mentions(timeline_nodes: List[Dict[str, Any]], users: set):
    mentions: Dict[str, int] = {}
    nb_mentions = 0
    for event in timeline_nodes:
        event_type = event.get('type')
        if event_type not in MENTION_EVENT_TYPES:
            continue
        nb_mentions += 1
        mentions[event_type] = mentions.get(event_type, 0) + 1
        users.add(_login(event.get('actor')))
    return mentions, nb_mentions


def _accumulate_comments(comment_nodes: List[Dict[str, Any]], users: set):
    reactions_on_comments = ReactionCounts()
    nb_non_member = 0
    for comment in comment_nodes:
        users.add(_login(comment.get('author')))
        reactions_on_comments = reactions_on_comments + process_reactions(comment.get('reactions'))
        if comment.get('authorAssociation') == NON_MEMBER_ASSOCIATION:
            nb_non_member += 1
    return reactions_on_comments, nb_non_member


def aggregate_issue_metrics(issue_number: int, issue: Dict[str, Any]) -> IssueMetrics:
    """
    Compute the engagement metrics of one issue.

    Unique users are the issue author, every comment author and every counted timeline actor.
    Missing identities all collapse into a single None member of that set.
    """
    users = {_login(issue.get('author'))}

    mentions, nb_mentions = _accumulate_mentions(_nodes(issue.get('timelineItems')), users)
    comment_nodes = _nodes(issue.get('comments'))
    reactions_on_comments, nb_non_member = _accumulate_comments(comment_nodes, users)

    return IssueMetrics(
        id=issue_number,
        body=issue.get('body') or '',
        unique_users=len(users),
        mentions=mentions,
        nb_mentions=nb_mentions,
        reactions=process_reactions(issue.get('reactions')),
        reactions_on_comments=reactions_on_comments,
        nb_comments=len(comment_nodes),
        nb_non_member_comments=nb_non_member,
    )
