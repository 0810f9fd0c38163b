"""
ParticipationAggregator - an account's participation across base protocol
and plugins

This service handles:
1. Reading the account's base-protocol joined actions
2. Reading the account's plugin-protocol action ids
3. Dropping plugin ids already present in the base list
4. Resolving plugin bindings for the remaining ids
5. One combined batch: current round, action metadata, per-plugin joined value
6. One round-dependent batch: vote tallies of the current round
7. Vote share and has-reward per plugin action

Batches:
- [baseParticipationList, pluginActionIds]
- resolver stage 1 / stage 2 (skipped for cached bindings)
- [currentRound, actionMetadata?, participationOf x N]
- [voteTallies] (only for a non-zero round)

Records are base records followed by plugin records in plugin-id order. A
failed batch is reported in ``error``; whatever did arrive is still returned.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from love20_toolkit.actions.joined_amount import extension_batch_index
from love20_toolkit.actions.models import ActionMetadata, ParticipationRecord
from love20_toolkit.contracts.reader import (
    ContractReader,
    decode_action_ids,
    decode_action_metadata_list,
    decode_amount,
    decode_joined_actions,
    decode_vote_tallies,
)
from love20_toolkit.extensions.models import (
    ExtensionBinding,
    ExtensionContractInfo,
)
from love20_toolkit.extensions.registry import describe_binding
from love20_toolkit.extensions.resolver import ExtensionResolver
from love20_toolkit.participation.votes import (
    VoteTally,
    build_votes_map,
    compute_vote_percent,
    has_reward,
)
from love20_toolkit.shared.constants import ContractAddresses, RewardConstants
from love20_toolkit.shared.exceptions import ContractDecodeException
from love20_toolkit.shared.logging import get_logger
from love20_toolkit.shared.results import (
    ErrorSeverity,
    ProcessingError,
    first_error,
)
from love20_toolkit.shared.services.read_transport import (
    MulticallTransport,
    ReadResult,
    ReadTransport,
)

logger = get_logger(__name__)

ROUND_INDEX = 0  # currentRound is always first in the combined batch


@dataclass(frozen=True)
class CombinedBatchLayout:
    """Offsets of each read inside the combined batch."""

    metadata_index: Optional[int]
    participation_start: int
    participation_count: int

    @property
    def size(self) -> int:
        return self.participation_start + self.participation_count

    def participation_index(self, extension_position: int) -> int:
        """Batch offset of the n-th extension-bound joined value read."""
        return self.participation_start + extension_position


def combined_batch_layout(
    has_metadata: bool, extension_count: int
) -> CombinedBatchLayout:
    metadata_index = ROUND_INDEX + 1 if has_metadata else None
    participation_start = ROUND_INDEX + 1 + (1 if has_metadata else 0)
    return CombinedBatchLayout(
        metadata_index=metadata_index,
        participation_start=participation_start,
        participation_count=extension_count,
    )


def unique_extension_ids(
    plugin_ids: Sequence[int], base_ids: Sequence[int]
) -> List[int]:
    """Plugin ids not in the base list, first occurrence order kept."""
    excluded = set(base_ids)
    unique = []
    for action_id in plugin_ids:
        if action_id not in excluded:
            excluded.add(action_id)
            unique.append(action_id)
    return unique


@dataclass
class ParticipationAggregate:
    records: List[ParticipationRecord] = field(default_factory=list)
    extension_infos: List[ExtensionContractInfo] = field(default_factory=list)
    is_pending: bool = False
    error: Optional[ProcessingError] = None

    @property
    def action_ids(self) -> List[int]:
        return [record.action_id for record in self.records]


class ParticipationAggregator:
    """
    Builds the unified per-account participation list.

    Attributes:
        transport: Executes batched remote reads
        reader: Builds the read calls against the protocol contracts
        extension_resolver: Resolves (and caches) plugin bindings
        min_vote_per_thousand: Vote share, per mille, above which an
            action is rewarded
    """

    def __init__(
        self,
        transport: ReadTransport,
        reader: ContractReader,
        extension_resolver: Optional[ExtensionResolver] = None,
        min_vote_per_thousand: Optional[int] = None,
    ):
        self.transport = transport
        self.reader = reader
        self.extension_resolver = extension_resolver or ExtensionResolver(
            transport, reader
        )
        if min_vote_per_thousand is None:
            min_vote_per_thousand = (
                RewardConstants.get_min_vote_per_thousand()
            )
        self.min_vote_per_thousand = min_vote_per_thousand

    @classmethod
    def from_env(cls) -> "ParticipationAggregator":
        """
        Build an aggregator wired to the configured chain and contracts.

        Raises:
            ConfigurationException: If the RPC URL or a contract address
                is not configured.
        """
        addresses = ContractAddresses.from_env()
        return cls(MulticallTransport(), ContractReader(addresses))

    async def aggregate(
        self, token_address: str, account: str
    ) -> ParticipationAggregate:
        errors: List[Optional[ProcessingError]] = []
        context = {"token": token_address, "account": account}

        # Steps 1-2: base list and plugin ids, independent of each other
        base_result, plugin_result = await self.transport.read_batch(
            [
                self.reader.base_participation_list(token_address, account),
                self.reader.plugin_action_ids(token_address, account),
            ]
        )
        base_records, error = self._decode(
            base_result,
            decode_joined_actions,
            "participation.base_list",
            context,
        )
        errors.append(error)
        plugin_ids, error = self._decode(
            plugin_result,
            decode_action_ids,
            "participation.plugin_ids",
            context,
        )
        errors.append(error)
        base_records = base_records or []
        plugin_ids = plugin_ids or []

        # Step 3: base records win, plugin ids keep their order
        extension_ids = unique_extension_ids(
            plugin_ids, [record.action_id for record in base_records]
        )
        if not extension_ids:
            return ParticipationAggregate(
                records=list(base_records), error=first_error(*errors)
            )

        # Step 4
        resolution = await self.extension_resolver.resolve(
            token_address, extension_ids
        )
        errors.append(resolution.error)
        bindings = resolution.bindings
        extension_bindings = [b for b in bindings if b.is_extension]

        # Step 5: combined batch
        layout = combined_batch_layout(True, len(extension_bindings))
        calls = [self.reader.current_round()]
        calls.append(self.reader.action_metadata(token_address, extension_ids))
        calls.extend(
            self.reader.participation_of(b.extension_address, account)
            for b in extension_bindings
        )
        logger.debug(
            f"Combined batch of {len(calls)} reads for {len(extension_ids)} "
            f"plugin actions"
        )
        combined = await self.transport.read_batch(calls)

        current_round, error = self._decode(
            combined[ROUND_INDEX],
            decode_amount,
            "participation.current_round",
            context,
        )
        errors.append(error)
        metadata, error = self._decode(
            combined[layout.metadata_index],
            decode_action_metadata_list,
            "participation.action_metadata",
            context,
        )
        errors.append(error)

        # Step 6: vote tallies once the round is known
        votes_map: VoteTally = {}
        if current_round:
            (tally_result,) = await self.transport.read_batch(
                [self.reader.vote_tallies(token_address, current_round)]
            )
            tally, error = self._decode(
                tally_result,
                decode_vote_tallies,
                "participation.vote_tallies",
                {**context, "round": current_round},
                severity=ErrorSeverity.WARNING,
            )
            errors.append(error)
            if tally is not None:
                votes_map = build_votes_map(*tally)

        # Steps 7-9
        extension_records, error = self._build_extension_records(
            extension_ids,
            bindings,
            metadata or [],
            combined,
            layout,
            votes_map,
            context,
        )
        errors.append(error)

        return ParticipationAggregate(
            records=list(base_records) + extension_records,
            extension_infos=[describe_binding(b) for b in bindings],
            error=first_error(*errors),
        )

    def _build_extension_records(
        self,
        extension_ids: List[int],
        bindings: List[ExtensionBinding],
        metadata: List[ActionMetadata],
        combined: List[ReadResult],
        layout: CombinedBatchLayout,
        votes_map: VoteTally,
        context: dict,
    ) -> Tuple[List[ParticipationRecord], Optional[ProcessingError]]:
        records = []
        error: Optional[ProcessingError] = None

        for i, action_id in enumerate(extension_ids):
            if i >= len(metadata):
                break

            joined_amount = 0
            binding = bindings[i]
            if binding.is_extension:
                offset = layout.participation_index(
                    extension_batch_index(bindings, i)
                )
                amount, amount_error = self._decode(
                    combined[offset],
                    decode_amount,
                    "participation.joined_value",
                    {**context, "action_id": action_id},
                    severity=ErrorSeverity.WARNING,
                )
                if amount is not None:
                    joined_amount = amount
                error = error or amount_error

            vote = votes_map.get(action_id)
            votes_num = vote.votes if vote else 0
            total_votes = vote.total_votes if vote else 0
            percent = compute_vote_percent(votes_num, total_votes)

            records.append(
                ParticipationRecord(
                    action=metadata[i],
                    votes_num=votes_num,
                    vote_percent_per_ten_thousand=percent,
                    has_reward=has_reward(
                        percent, self.min_vote_per_thousand
                    ),
                    joined_amount_of_account=joined_amount,
                )
            )

        return records, error

    @staticmethod
    def _decode(
        result: ReadResult,
        decoder,
        source: str,
        context: dict,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ):
        """Decode a read result into (value, None) or (None, error)."""
        if not result.success:
            logger.warning(f"{source} failed: {result.error}")
            return None, ProcessingError.from_exception(
                source, result.error, context=context, severity=severity
            )
        try:
            return decoder(result.value), None
        except (ContractDecodeException, TypeError, ValueError) as e:
            logger.warning(f"{source} returned undecodable data: {e}")
            return None, ProcessingError.from_exception(
                source, e, context=context, severity=severity
            )


class ParticipationTracker:
    """
    Holds the latest aggregate for the current (token, account).

    A refresh started for one identity is discarded if the identity changed
    before it settled.
    """

    def __init__(
        self,
        aggregator: ParticipationAggregator,
        token_address: Optional[str] = None,
        account: Optional[str] = None,
    ):
        self.aggregator = aggregator
        self._identity: Tuple[Optional[str], Optional[str]] = (None, None)
        self._generation = 0
        self._in_flight = 0
        self.latest: Optional[ParticipationAggregate] = None
        self.set_identity(token_address, account)

    @property
    def identity(self) -> Tuple[Optional[str], Optional[str]]:
        return self._identity

    @property
    def is_pending(self) -> bool:
        return self._in_flight > 0

    def set_identity(
        self, token_address: Optional[str], account: Optional[str]
    ) -> None:
        identity = (
            token_address.lower() if token_address else None,
            account.lower() if account else None,
        )
        if identity == self._identity:
            return
        self._identity = identity
        self._generation += 1
        self._in_flight = 0
        self.latest = None

    async def refresh(self) -> Optional[ParticipationAggregate]:
        """Aggregate for the current identity; None if it went stale."""
        token_address, account = self._identity
        if not token_address or not account:
            return None

        generation = self._generation
        self._in_flight += 1
        try:
            aggregate = await self.aggregator.aggregate(token_address, account)
        finally:
            if generation == self._generation:
                self._in_flight -= 1

        if generation != self._generation:
            logger.debug(
                f"Discarding participation for stale identity "
                f"{token_address}/{account}"
            )
            return None

        self.latest = aggregate
        return aggregate
