"""Action data models decoded from the round viewer."""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class ActionHead:
    id: int
    author: str
    create_at_block: int


@dataclass(frozen=True)
class ActionBody:
    min_stake: int
    max_random_accounts: int
    whitelist_address: str
    title: str
    verification_rule: str
    verification_keys: List[str] = field(default_factory=list)
    verification_infos: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ActionMetadata:
    """An action's head (identity) and body (rules)."""

    head: ActionHead
    body: ActionBody

    @property
    def id(self) -> int:
        return self.head.id


@dataclass(frozen=True)
class JoinableAction:
    """An action the account can join, with its base-protocol joined amount."""

    action: ActionMetadata
    votes_num: int = 0
    vote_percent_per_ten_thousand: int = 0
    joined_amount: int = 0


@dataclass(frozen=True)
class ParticipationRecord:
    """
    One row of an account's participation view.

    Built fresh on every aggregation and never persisted. At most one record
    exists per action id.
    """

    action: ActionMetadata
    votes_num: int
    vote_percent_per_ten_thousand: int
    has_reward: bool
    joined_amount_of_account: int

    @property
    def action_id(self) -> int:
        return self.action.id


@dataclass(frozen=True)
class VoteCount:
    votes: int
    total_votes: int
