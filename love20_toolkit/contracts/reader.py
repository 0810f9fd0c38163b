"""
Read-call builders and response decoders for the LOVE20 contracts.

Every remote read the toolkit issues is built here, so selectors and the
tuple layouts they return live in one place:

- extension center: extension(token, actionId), actionIdsByAccount(token, account)
- plugin instance: factory(), joinedValue(), joinedValueByAccount(account)
- join: currentRound()
- round viewer: votesNums(token, round), joinedActions(token, account),
  actionInfosByIds(token, actionIds)
"""

from typing import Any, List, Sequence, Tuple

from eth_utils import to_checksum_address

from love20_toolkit.actions.models import (
    ActionBody,
    ActionHead,
    ActionMetadata,
    ParticipationRecord,
)
from love20_toolkit.shared.constants import ZERO_ADDRESS, ContractAddresses
from love20_toolkit.shared.exceptions import ContractDecodeException
from love20_toolkit.shared.services.read_transport import ReadCall

# ((id, author, createAtBlock), (minStake, maxRandomAccounts, whitelist,
#   title, verificationRule, verificationKeys, verificationInfos))
ACTION_INFO_TYPE = (
    "((uint256,address,uint256),"
    "(uint256,uint256,address,string,string,string[],string[]))"
)
# (actionInfo, votesNum, votePercentPerTenThousand, hasReward, joinedAmountOfAccount)
JOINED_ACTION_TYPE = f"({ACTION_INFO_TYPE},uint256,uint256,bool,uint256)"

EXTENSION_OF_SIG = "extension(address,uint256)(address)"
FACTORY_OF_SIG = "factory()(address)"
JOINED_VALUE_SIG = "joinedValue()(uint256)"
JOINED_VALUE_BY_ACCOUNT_SIG = "joinedValueByAccount(address)(uint256)"
CURRENT_ROUND_SIG = "currentRound()(uint256)"
VOTES_NUMS_SIG = "votesNums(address,uint256)(uint256[],uint256[])"
JOINED_ACTIONS_SIG = f"joinedActions(address,address)({JOINED_ACTION_TYPE}[])"
ACTION_IDS_BY_ACCOUNT_SIG = "actionIdsByAccount(address,address)(uint256[])"
ACTION_INFOS_BY_IDS_SIG = (
    f"actionInfosByIds(address,uint256[])({ACTION_INFO_TYPE}[])"
)


def _checksum(address: str) -> str:
    return to_checksum_address(address.lower())


class ContractReader:
    """Builds ReadCall objects against a fixed set of protocol addresses."""

    def __init__(self, addresses: ContractAddresses):
        self.addresses = addresses

    # Extension center

    def extension_of(self, token: str, action_id: int) -> ReadCall:
        return ReadCall(
            self.addresses.extension_center,
            EXTENSION_OF_SIG,
            (_checksum(token), int(action_id)),
            label="extensionOf",
        )

    def plugin_action_ids(self, token: str, account: str) -> ReadCall:
        return ReadCall(
            self.addresses.extension_center,
            ACTION_IDS_BY_ACCOUNT_SIG,
            (_checksum(token), _checksum(account)),
            label="pluginActionIds",
        )

    # Plugin instance

    @staticmethod
    def factory_of(extension: str) -> ReadCall:
        return ReadCall(extension, FACTORY_OF_SIG, (), label="factoryOf")

    @staticmethod
    def aggregate_participation(extension: str) -> ReadCall:
        return ReadCall(
            extension, JOINED_VALUE_SIG, (), label="aggregateParticipation"
        )

    @staticmethod
    def participation_of(extension: str, account: str) -> ReadCall:
        return ReadCall(
            extension,
            JOINED_VALUE_BY_ACCOUNT_SIG,
            (_checksum(account),),
            label="participationOf",
        )

    # Join

    def current_round(self) -> ReadCall:
        return ReadCall(
            self.addresses.join, CURRENT_ROUND_SIG, (), label="currentRound"
        )

    # Round viewer

    def vote_tallies(self, token: str, round_: int) -> ReadCall:
        return ReadCall(
            self.addresses.round_viewer,
            VOTES_NUMS_SIG,
            (_checksum(token), int(round_)),
            label="voteTallies",
        )

    def base_participation_list(self, token: str, account: str) -> ReadCall:
        return ReadCall(
            self.addresses.round_viewer,
            JOINED_ACTIONS_SIG,
            (_checksum(token), _checksum(account)),
            label="baseParticipationList",
        )

    def action_metadata(
        self, token: str, action_ids: Sequence[int]
    ) -> ReadCall:
        return ReadCall(
            self.addresses.round_viewer,
            ACTION_INFOS_BY_IDS_SIG,
            (_checksum(token), [int(i) for i in action_ids]),
            label="actionMetadata",
        )


# Decoders


def decode_address(value: Any) -> str:
    """Normalize an address result; empty answers become the zero sentinel."""
    if not value:
        return ZERO_ADDRESS
    if isinstance(value, bytes):
        value = "0x" + value.hex()[-40:]
    return str(value)


def decode_action_metadata(raw: Any) -> ActionMetadata:
    try:
        head, body = raw
        action_id, author, create_at_block = head
        (
            min_stake,
            max_random_accounts,
            whitelist_address,
            title,
            verification_rule,
            verification_keys,
            verification_infos,
        ) = body
    except (TypeError, ValueError) as e:
        raise ContractDecodeException(
            f"Unexpected action info layout: {raw!r}"
        ) from e

    return ActionMetadata(
        head=ActionHead(
            id=int(action_id),
            author=str(author),
            create_at_block=int(create_at_block),
        ),
        body=ActionBody(
            min_stake=int(min_stake),
            max_random_accounts=int(max_random_accounts),
            whitelist_address=str(whitelist_address),
            title=str(title),
            verification_rule=str(verification_rule),
            verification_keys=list(verification_keys),
            verification_infos=list(verification_infos),
        ),
    )


def decode_action_metadata_list(raw: Any) -> List[ActionMetadata]:
    return [decode_action_metadata(item) for item in raw or []]


def decode_joined_action(raw: Any) -> ParticipationRecord:
    try:
        action_info, votes_num, vote_percent, has_reward, joined_amount = raw
    except (TypeError, ValueError) as e:
        raise ContractDecodeException(
            f"Unexpected joined action layout: {raw!r}"
        ) from e

    return ParticipationRecord(
        action=decode_action_metadata(action_info),
        votes_num=int(votes_num),
        vote_percent_per_ten_thousand=int(vote_percent),
        has_reward=bool(has_reward),
        joined_amount_of_account=int(joined_amount),
    )


def decode_joined_actions(raw: Any) -> List[ParticipationRecord]:
    return [decode_joined_action(item) for item in raw or []]


def decode_amount(raw: Any) -> int:
    """A uint256 answer; an undecodable (None) answer is an error, not 0."""
    if raw is None or isinstance(raw, bool):
        raise ContractDecodeException(f"Expected an amount, got {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ContractDecodeException(
            f"Expected an amount, got {raw!r}"
        ) from e


def decode_action_ids(raw: Any) -> List[int]:
    return [int(action_id) for action_id in raw or []]


def decode_vote_tallies(raw: Any) -> Tuple[List[int], List[int]]:
    """Split a votesNums answer into (action ids, votes)."""
    try:
        action_ids, votes = raw
    except (TypeError, ValueError) as e:
        raise ContractDecodeException(
            f"Unexpected votesNums layout: {raw!r}"
        ) from e
    if len(action_ids) != len(votes):
        raise ContractDecodeException(
            f"votesNums returned {len(action_ids)} ids "
            f"but {len(votes)} vote counts"
        )
    return [int(i) for i in action_ids], [int(v) for v in votes]
