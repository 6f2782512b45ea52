"""
Bulk candidate selection.
Reactions do not trigger issue webhooks, so scheduled runs re-score a random sample of open issues.
Issues updated within the last day were already handled by the event-triggered run and are skipped.
"""
import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence
from normalize.models import IssueSummary

# number of issues requested per page when listing open issues
PER_PAGE = 100
# number of issues sampled per scheduled run
NB_OF_ISSUES = 20
RECENT_WINDOW = timedelta(hours=24)


def default_cutoff(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now - RECENT_WINDOW


def select_candidates(
    issues: Sequence[IssueSummary], cutoff: datetime, sample_size: int = NB_OF_ISSUES, rng: Optional[random.Random] = None
) -> List[IssueSummary]:
    """
    Return an unweighted random sample, without replacement, of the issues last updated strictly before cutoff.
    The sample holds min(sample_size, number of stale issues) entries.
    """
    stale = [i for i in issues if i.updated_at < cutoff]
    k = min(max(int(sample_size), 0), len(stale))
    return (rng or random).sample(stale, k)
