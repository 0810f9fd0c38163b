"""Vote-share arithmetic for participation records."""

from typing import Dict, Sequence

from love20_toolkit.actions.models import VoteCount
from love20_toolkit.shared.constants import RewardConstants

PER_THOUSAND_TO_PER_TEN_THOUSAND = (
    RewardConstants.PER_THOUSAND_TO_PER_TEN_THOUSAND
)
PER_TEN_THOUSAND = RewardConstants.PER_TEN_THOUSAND

# action id -> (votes, total votes in round)
VoteTally = Dict[int, VoteCount]


def build_votes_map(
    action_ids: Sequence[int], votes: Sequence[int]
) -> VoteTally:
    """Pair each action's votes with the round total (sum of all votes)."""
    total_votes = sum(int(v) for v in votes)
    return {
        int(action_id): VoteCount(votes=int(vote), total_votes=total_votes)
        for action_id, vote in zip(action_ids, votes)
    }


def compute_vote_percent(votes: int, total_votes: int) -> int:
    """Vote share in per-ten-thousand units, floored; 0 when nobody voted."""
    if total_votes <= 0 or votes <= 0:
        return 0
    return votes * PER_TEN_THOUSAND // total_votes


def has_reward(
    vote_percent_per_ten_thousand: int, min_vote_per_thousand: int
) -> bool:
    threshold = min_vote_per_thousand * PER_THOUSAND_TO_PER_TEN_THOUSAND
    return vote_percent_per_ten_thousand > threshold
