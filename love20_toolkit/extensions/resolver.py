"""
Extension Resolver

Works out, for a batch of actions of one token, whether each action is bound
to a plugin and which factory created that plugin.

Resolution runs in two dependent stages:
1. extension(token, actionId) for every id missing from the cache
2. factory() on every non-zero address stage 1 returned

Stage 2 is built only from settled stage 1 results. Its results are aligned
to the filtered list of non-zero addresses, and nonzero_positions() maps them
back to the stage 1 ids.

Complete bindings (including "no extension") are written to the cache, so a
second resolve of the same ids within the TTL issues no remote reads. Ids
whose reads failed are left out of the cache and retried on the next call.
"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from love20_toolkit.contracts.reader import ContractReader, decode_address
from love20_toolkit.extensions.cache import ExtensionBindingCache
from love20_toolkit.extensions.models import (
    ExtensionBinding,
    ExtensionResolution,
)
from love20_toolkit.shared.constants import is_zero_address
from love20_toolkit.shared.logging import get_logger
from love20_toolkit.shared.results import ProcessingError, first_error
from love20_toolkit.shared.services.read_transport import ReadTransport

logger = get_logger(__name__)

ResolvedCallback = Callable[[str, List[int]], None]


def nonzero_positions(addresses: Sequence[Optional[str]]) -> List[int]:
    """
    Positions of non-zero addresses, in order.

    Result j of a batch built from the non-zero addresses belongs to
    position nonzero_positions(addresses)[j] of the original list. Failed
    reads are passed as None and are skipped like the zero address.
    """
    return [
        position
        for position, address in enumerate(addresses)
        if not is_zero_address(address)
    ]


def _unique(action_ids: Sequence[int]) -> List[int]:
    seen = set()
    ordered = []
    for action_id in action_ids:
        if action_id not in seen:
            seen.add(action_id)
            ordered.append(action_id)
    return ordered


class ExtensionResolver:
    """
    Resolves and caches action -> plugin bindings.

    Example:
        resolver = ExtensionResolver(transport, ContractReader(addresses))
        resolution = await resolver.resolve(token, [1, 2, 3])
        for binding in resolution.bindings:
            ...
    """

    def __init__(
        self,
        transport: ReadTransport,
        reader: ContractReader,
        cache: Optional[ExtensionBindingCache] = None,
    ):
        self.transport = transport
        self.reader = reader
        self.cache = cache or ExtensionBindingCache()
        self._subscribers: List[ResolvedCallback] = []

    def subscribe(self, callback: ResolvedCallback) -> Callable[[], None]:
        """
        Call ``callback(token, action_ids)`` after fresh bindings are cached.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def invalidate(self, token_address: str, action_id: int) -> None:
        """Forget one action's binding, e.g. right after a plugin deploy."""
        self.cache.invalidate(token_address, action_id)
        logger.info(
            f"Invalidated extension binding {token_address.lower()}:{action_id}"
        )

    def snapshot(
        self, token_address: str, action_ids: Sequence[int]
    ) -> ExtensionResolution:
        """
        Cache-only view of the bindings.

        Ids without a valid cache entry get an unresolved placeholder and
        make the result pending. No remote reads are issued.
        """
        bindings = []
        is_pending = False
        for action_id in action_ids:
            binding = self.cache.get(token_address, action_id)
            if binding is None:
                is_pending = True
                binding = ExtensionBinding.unresolved(int(action_id))
            bindings.append(binding)
        return ExtensionResolution(bindings=bindings, is_pending=is_pending)

    async def resolve(
        self, token_address: str, action_ids: Sequence[int]
    ) -> ExtensionResolution:
        """
        Resolve bindings for ``action_ids``, index-aligned with the input.

        Never raises for remote failures: the first failed read is returned
        in ``error`` and the affected ids carry placeholder bindings.
        """
        action_ids = [int(action_id) for action_id in action_ids]
        if not action_ids:
            return ExtensionResolution(bindings=[])

        cached: Dict[int, ExtensionBinding] = {}
        unresolved_ids: List[int] = []
        for action_id in _unique(action_ids):
            binding = self.cache.get(token_address, action_id)
            if binding is None:
                unresolved_ids.append(action_id)
            else:
                cached[action_id] = binding

        fresh: Dict[int, ExtensionBinding] = {}
        error: Optional[ProcessingError] = None
        if unresolved_ids:
            logger.debug(
                f"Resolving {len(unresolved_ids)} of {len(action_ids)} "
                f"actions for {token_address} ({len(cached)} cached)"
            )
            fresh, error = await self._resolve_remote(
                token_address, unresolved_ids
            )
            self._write_back(token_address, unresolved_ids, fresh)

        bindings = [
            cached[action_id] if action_id in cached else fresh[action_id]
            for action_id in action_ids
        ]
        return ExtensionResolution(bindings=bindings, error=error)

    async def _resolve_remote(
        self, token_address: str, unresolved_ids: List[int]
    ) -> Tuple[Dict[int, ExtensionBinding], Optional[ProcessingError]]:
        # Stage 1: bound plugin address per action
        stage1 = await self.transport.read_batch(
            [
                self.reader.extension_of(token_address, action_id)
                for action_id in unresolved_ids
            ]
        )

        fresh: Dict[int, ExtensionBinding] = {}
        stage1_error: Optional[ProcessingError] = None
        addresses: List[Optional[str]] = []
        for action_id, result in zip(unresolved_ids, stage1):
            if not result.success:
                stage1_error = stage1_error or ProcessingError.from_exception(
                    "extension_resolver.stage1",
                    result.error,
                    context={"token": token_address, "action_id": action_id},
                )
                fresh[action_id] = ExtensionBinding.unresolved(action_id)
                addresses.append(None)
                continue

            address = decode_address(result.value)
            addresses.append(address)
            if is_zero_address(address):
                fresh[action_id] = ExtensionBinding.not_extension(action_id)

        # Stage 2: factory of every discovered plugin
        positions = nonzero_positions(addresses)
        stage2 = []
        if positions:
            stage2 = await self.transport.read_batch(
                [self.reader.factory_of(addresses[p]) for p in positions]
            )

        stage2_error: Optional[ProcessingError] = None
        for position, result in zip(positions, stage2):
            action_id = unresolved_ids[position]
            extension_address = addresses[position]
            factory_address = None
            if result.success:
                factory_address = decode_address(result.value)
                if is_zero_address(factory_address):
                    logger.warning(
                        f"Extension {extension_address} of action "
                        f"{action_id} reports no factory"
                    )
                    factory_address = None
            else:
                stage2_error = stage2_error or ProcessingError.from_exception(
                    "extension_resolver.stage2",
                    result.error,
                    context={
                        "token": token_address,
                        "action_id": action_id,
                        "extension": extension_address,
                    },
                )
            fresh[action_id] = ExtensionBinding.bound(
                action_id, extension_address, factory_address
            )

        return fresh, first_error(stage1_error, stage2_error)

    def _write_back(
        self,
        token_address: str,
        unresolved_ids: List[int],
        fresh: Dict[int, ExtensionBinding],
    ) -> None:
        written = [
            action_id
            for action_id in unresolved_ids
            if self.cache.put(token_address, fresh[action_id])
        ]
        if not written:
            return

        logger.debug(f"Cached {len(written)} extension bindings")
        for callback in list(self._subscribers):
            try:
                callback(token_address, written)
            except Exception as e:
                logger.error(f"Extension resolved callback failed: {e}")
