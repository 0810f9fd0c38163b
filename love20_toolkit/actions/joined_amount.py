"""
Joined amount per joinable action, across base protocol and plugins.

For an action bound to a plugin the joined amount lives on the plugin
(joinedValue()); otherwise the base-protocol amount already on the
JoinableAction is used. All plugin reads go out in one batch, in list order
of the extension-bound actions.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from love20_toolkit.actions.models import JoinableAction
from love20_toolkit.contracts.reader import ContractReader, decode_amount
from love20_toolkit.extensions.models import ExtensionBinding
from love20_toolkit.extensions.resolver import ExtensionResolver
from love20_toolkit.shared.exceptions import ContractDecodeException
from love20_toolkit.shared.logging import get_logger
from love20_toolkit.shared.results import (
    ErrorSeverity,
    ProcessingError,
    first_error,
)
from love20_toolkit.shared.services.read_transport import (
    ReadResult,
    ReadTransport,
)

logger = get_logger(__name__)


def extension_batch_index(
    bindings: Sequence[ExtensionBinding], index: int
) -> int:
    """Number of extension-bound bindings strictly before ``index``."""
    return sum(1 for binding in bindings[:index] if binding.is_extension)


@dataclass
class JoinedAmounts:
    """Uniform joined-amount accessor over a list of joinable actions."""

    actions: List[JoinableAction]
    bindings: List[ExtensionBinding]
    plugin_results: List[ReadResult] = field(default_factory=list)
    error: Optional[ProcessingError] = None

    def get_joined_amount(self, index: int) -> int:
        if index < 0 or index >= len(self.actions):
            return 0

        base_amount = self.actions[index].joined_amount
        if index >= len(self.bindings):
            return base_amount
        if not self.bindings[index].is_extension:
            return base_amount

        batch_index = extension_batch_index(self.bindings, index)
        if batch_index >= len(self.plugin_results):
            return base_amount
        result = self.plugin_results[batch_index]
        if not result.success:
            return base_amount
        try:
            return decode_amount(result.value)
        except ContractDecodeException:
            return base_amount

    def amounts(self) -> List[int]:
        return [self.get_joined_amount(i) for i in range(len(self.actions))]


class JoinedAmountResolver:
    """Loads plugin-side joined amounts for joinable actions."""

    def __init__(
        self,
        transport: ReadTransport,
        reader: ContractReader,
        extension_resolver: ExtensionResolver,
    ):
        self.transport = transport
        self.reader = reader
        self.extension_resolver = extension_resolver

    async def load(
        self, token_address: str, joinable_actions: Sequence[JoinableAction]
    ) -> JoinedAmounts:
        actions = list(joinable_actions)
        if not actions:
            return JoinedAmounts(actions=[], bindings=[])

        resolution = await self.extension_resolver.resolve(
            token_address, [item.action.id for item in actions]
        )
        bindings = resolution.bindings
        extension_bindings = [b for b in bindings if b.is_extension]

        plugin_results: List[ReadResult] = []
        plugin_error: Optional[ProcessingError] = None
        if extension_bindings:
            logger.debug(
                f"Reading joined value of {len(extension_bindings)} plugins"
            )
            plugin_results = await self.transport.read_batch(
                [
                    self.reader.aggregate_participation(b.extension_address)
                    for b in extension_bindings
                ]
            )
            for binding, result in zip(extension_bindings, plugin_results):
                failure = result.error
                if failure is None:
                    try:
                        decode_amount(result.value)
                    except ContractDecodeException as e:
                        failure = e
                if failure is not None:
                    plugin_error = ProcessingError.from_exception(
                        "joined_amount.plugin",
                        failure,
                        context={
                            "token": token_address,
                            "action_id": binding.action_id,
                            "extension": binding.extension_address,
                        },
                        severity=ErrorSeverity.WARNING,
                    )
                    break

        return JoinedAmounts(
            actions=actions,
            bindings=bindings,
            plugin_results=plugin_results,
            error=first_error(resolution.error, plugin_error),
        )
