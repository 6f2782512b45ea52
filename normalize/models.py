"""
Data models for issue metrics, scoring coefficients and the ADO/GitHub entities the sync works with.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional


class ReactionCounts:
    """
    Reactions partitioned into exactly three buckets.
    """
    def __init__(self, positive: int = 0, negative: int = 0, neutral: int = 0):
        self.positive = positive
        self.negative = negative
        self.neutral = neutral

    @property
    def total(self) -> int:
        return self.positive + self.negative + self.neutral

    def __add__(self, other: 'ReactionCounts') -> 'ReactionCounts':
        return ReactionCounts(self.positive + other.positive, self.negative + other.negative, self.neutral + other.neutral)

    def __eq__(self, other):
        if not isinstance(other, ReactionCounts):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"ReactionCounts(positive={self.positive}, negative={self.negative}, neutral={self.neutral})"

    def to_dict(self) -> Dict[str, int]:
        return {'positive': self.positive, 'negative': self.negative, 'neutral': self.neutral}


class IssueMetrics:
    """
    Engagement signals gathered from one GitHub issue.
    The body is kept only to resolve the work item reference and is left out of to_dict().
    """
    def __init__(
        self,
        id: int,
        body: str = '',
        unique_users: int = 0,
        mentions: Optional[Dict[str, int]] = None,
        nb_mentions: int = 0,
        reactions: Optional[ReactionCounts] = None,
        reactions_on_comments: Optional[ReactionCounts] = None,
        nb_comments: int = 0,
        nb_non_member_comments: int = 0,
    ):
        self.id = id
        self.body = body
        self.unique_users = unique_users
        self.mentions = mentions or {}  # e.g. {'CrossReferencedEvent': 3, 'MarkedAsDuplicateEvent': 1}
        self.nb_mentions = nb_mentions
        self.reactions = reactions or ReactionCounts()
        self.reactions_on_comments = reactions_on_comments or ReactionCounts()
        self.nb_comments = nb_comments
        self.nb_non_member_comments = nb_non_member_comments

    @property
    def nb_member_comments(self) -> int:
        return self.nb_comments - self.nb_non_member_comments

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'uniqueUsers': self.unique_users,
            'mentions': dict(self.mentions),
            'nbMentions': self.nb_mentions,
            'reactions': self.reactions.to_dict(),
            'reactionsOnComments': self.reactions_on_comments.to_dict(),
            'nbComments': self.nb_comments,
            'nbNonMemberComments': self.nb_non_member_comments,
        }


class ScoreCoefficients:
    """
    Weights of the linear importance score. version 0 is the legacy, unversioned formula.
    """
    FIELDS = (
        'unique_users',
        'pos_reactions',
        'neg_reactions',
        'neutral_reactions',
        'pos_comment_reactions',
        'non_member_comments',
        'member_comments',
        'mentions',
    )

    def __init__(
        self,
        unique_users: float = 2,
        pos_reactions: float = 2,
        neg_reactions: float = -2,
        neutral_reactions: float = 1,
        pos_comment_reactions: float = 1,
        non_member_comments: float = 2,
        member_comments: float = 1,
        mentions: float = 1,
        version: int = 0,
    ):
        self.unique_users = unique_users
        self.pos_reactions = pos_reactions
        self.neg_reactions = neg_reactions
        self.neutral_reactions = neutral_reactions
        self.pos_comment_reactions = pos_comment_reactions
        self.non_member_comments = non_member_comments
        self.member_comments = member_comments
        self.mentions = mentions
        self.version = version

    def to_dict(self) -> Dict[str, Any]:
        data = {name: getattr(self, name) for name in self.FIELDS}
        data['version'] = self.version
        return data


class Score:
    def __init__(self, value: float, version: int):
        self.value = value
        self.version = version

    def __repr__(self):
        return f"Score(value={self.value}, version={self.version})"


class WorkItem:
    """
    ADO work item as returned by the work item tracking API: an id and a field-name -> value mapping.
    """
    def __init__(self, id: int, fields: Optional[Dict[str, Any]] = None):
        self.id = id
        self.fields = fields or {}

    @property
    def title(self) -> str:
        return self.fields.get('System.Title') or ''

    @property
    def work_item_type(self) -> str:
        return self.fields.get('System.WorkItemType') or ''


class IssueSummary:
    """
    Lightweight view of an open GitHub issue, used to pick bulk candidates.
    """
    def __init__(self, number: int, title: str, updated_at: datetime, labels: Optional[List[str]] = None):
        self.number = number
        self.title = title
        self.updated_at = updated_at
        self.labels = labels or []

    def __repr__(self):
        return f"IssueSummary(number={self.number}, updated_at={self.updated_at.isoformat()})"
