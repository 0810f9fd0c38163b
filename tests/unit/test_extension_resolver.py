"""
Unit tests for the two-stage extension resolver.
"""

import json

import pytest

from fakes import FACTORY_F, FACTORY_G, PLUGIN_P, PLUGIN_Q, TOKEN
from love20_toolkit.extensions.cache import extension_cache_key
from love20_toolkit.extensions.models import ExtensionBinding
from love20_toolkit.extensions.resolver import nonzero_positions
from love20_toolkit.shared.constants import ZERO_ADDRESS
from love20_toolkit.shared.results import ErrorSeverity


class TestNonzeroPositions:
    def test_mixed(self):
        addresses = [ZERO_ADDRESS, PLUGIN_P, None, PLUGIN_Q, ZERO_ADDRESS]
        assert nonzero_positions(addresses) == [1, 3]

    def test_empty(self):
        assert nonzero_positions([]) == []

    def test_all_zero(self):
        assert nonzero_positions([ZERO_ADDRESS, ZERO_ADDRESS]) == []

    def test_case_insensitive_zero(self):
        assert nonzero_positions(["0x" + "0" * 40, PLUGIN_P.upper()]) == [1]


class TestEndToEnd:
    """Actions [1, 2, 3], action 2 bound to plugin P created by factory F."""

    @pytest.fixture(autouse=True)
    def bind_action_two(self, chain):
        chain.bind(TOKEN, 2, PLUGIN_P, FACTORY_F)

    @pytest.mark.asyncio
    async def test_first_call_two_round_trips(self, resolver, transport):
        resolution = await resolver.resolve(TOKEN, [1, 2, 3])

        assert resolution.bindings == [
            ExtensionBinding.not_extension(1),
            ExtensionBinding.bound(2, PLUGIN_P, FACTORY_F),
            ExtensionBinding.not_extension(3),
        ]
        assert resolution.error is None
        assert not resolution.is_pending
        assert transport.batch_sizes() == [3, 1]
        assert transport.labels(0) == ["extensionOf"] * 3
        assert transport.labels(1) == ["factoryOf"]
        assert transport.batches[1][0].address == PLUGIN_P

    @pytest.mark.asyncio
    async def test_second_call_is_free(self, resolver, transport):
        first = await resolver.resolve(TOKEN, [1, 2, 3])
        transport.reset()

        second = await resolver.resolve(TOKEN, [1, 2, 3])

        assert second.bindings == first.bindings
        assert transport.round_trips == 0

    @pytest.mark.asyncio
    async def test_zero_address_results_are_cached(
        self, resolver, memory_store
    ):
        await resolver.resolve(TOKEN, [1, 2, 3])

        raw = json.loads(memory_store.get_item(extension_cache_key(TOKEN, 1)))
        assert raw["data"]["extensionAddress"] == ZERO_ADDRESS
        assert memory_store.get_item(extension_cache_key(TOKEN, 2))

    @pytest.mark.asyncio
    async def test_refetch_after_ttl(self, resolver, transport, clock):
        await resolver.resolve(TOKEN, [1, 2, 3])
        transport.reset()
        clock.advance(3601)

        await resolver.resolve(TOKEN, [1, 2, 3])

        assert transport.batch_sizes() == [3, 1]

    @pytest.mark.asyncio
    async def test_partial_cache_hits(self, resolver, transport):
        await resolver.resolve(TOKEN, [1])
        transport.reset()

        resolution = await resolver.resolve(TOKEN, [1, 2, 3])

        assert transport.batch_sizes() == [2, 1]
        assert [b.action_id for b in resolution.bindings] == [1, 2, 3]
        assert resolution.bindings[1].is_extension


class TestResolverBehavior:
    @pytest.mark.asyncio
    async def test_empty_request(self, resolver, transport):
        resolution = await resolver.resolve(TOKEN, [])

        assert resolution.bindings == []
        assert transport.round_trips == 0

    @pytest.mark.asyncio
    async def test_no_extensions_skips_stage_two(self, resolver, transport):
        resolution = await resolver.resolve(TOKEN, [4, 5])

        assert transport.batch_sizes() == [2]
        assert not any(b.is_extension for b in resolution.bindings)

    @pytest.mark.asyncio
    async def test_duplicates_resolved_once(self, resolver, transport, chain):
        chain.bind(TOKEN, 2, PLUGIN_P, FACTORY_F)

        resolution = await resolver.resolve(TOKEN, [2, 1, 2])

        assert transport.batch_sizes() == [2, 1]
        assert [b.action_id for b in resolution.bindings] == [2, 1, 2]
        assert resolution.bindings[0] == resolution.bindings[2]

    @pytest.mark.asyncio
    async def test_stage_two_alignment(self, resolver, chain):
        """Stage-2 results map back through the filtered positions."""
        chain.bind(TOKEN, 11, PLUGIN_P, FACTORY_F)
        chain.bind(TOKEN, 13, PLUGIN_Q, FACTORY_G)

        resolution = await resolver.resolve(TOKEN, [10, 11, 12, 13])

        bindings = {b.action_id: b for b in resolution.bindings}
        assert bindings[11].factory_address == FACTORY_F
        assert bindings[13].factory_address == FACTORY_G
        assert not bindings[10].is_extension
        assert not bindings[12].is_extension

    @pytest.mark.asyncio
    async def test_incomplete_cache_entry_is_refetched(
        self, resolver, transport, chain, memory_store, clock
    ):
        chain.bind(TOKEN, 2, PLUGIN_P, FACTORY_F)
        memory_store.set_item(
            extension_cache_key(TOKEN, 2),
            json.dumps(
                {
                    "data": {
                        "extensionAddress": PLUGIN_P,
                        "factoryAddress": ZERO_ADDRESS,
                    },
                    "timestamp": clock.now,
                }
            ),
        )

        resolution = await resolver.resolve(TOKEN, [2])

        assert transport.batch_sizes() == [1, 1]
        assert resolution.bindings[0].factory_address == FACTORY_F


class TestResolverFailures:
    @pytest.mark.asyncio
    async def test_stage_two_failure_is_retried_next_call(
        self, resolver, transport, chain
    ):
        chain.bind(TOKEN, 2, PLUGIN_P, FACTORY_F)
        chain.bind(TOKEN, 3, PLUGIN_Q, FACTORY_G)
        chain.failing_addresses.add(PLUGIN_P)

        first = await resolver.resolve(TOKEN, [1, 2, 3])

        assert first.error is not None
        assert first.error.source == "extension_resolver.stage2"
        assert first.error.severity == ErrorSeverity.ERROR
        assert first.error.context["action_id"] == 2
        # The failed action is an incomplete extension, the others are fine
        assert first.bindings[1].is_extension
        assert first.bindings[1].factory_address is None
        assert not first.bindings[1].is_complete
        assert first.bindings[2].factory_address == FACTORY_G

        chain.failing_addresses.clear()
        transport.reset()
        second = await resolver.resolve(TOKEN, [1, 2, 3])

        assert transport.batch_sizes() == [1, 1]
        assert second.error is None
        assert second.bindings[1].factory_address == FACTORY_F

    @pytest.mark.asyncio
    async def test_stage_one_failure(self, resolver, transport, chain):
        chain.failing_labels.add("extensionOf")

        resolution = await resolver.resolve(TOKEN, [1, 2])

        assert resolution.error.source == "extension_resolver.stage1"
        assert all(not b.resolved for b in resolution.bindings)
        assert all(not b.is_extension for b in resolution.bindings)
        # No stage 2 without stage 1 results, nothing cached
        assert transport.batch_sizes() == [2]

        chain.failing_labels.clear()
        transport.reset()
        await resolver.resolve(TOKEN, [1, 2])
        assert transport.batch_sizes() == [2]

    @pytest.mark.asyncio
    async def test_stage_one_error_reported_before_stage_two(
        self, resolver, chain
    ):
        chain.bind(TOKEN, 2, PLUGIN_P, FACTORY_F)
        chain.failing_addresses.add(PLUGIN_P)
        chain.failing_predicates.append(
            lambda call: call.label == "extensionOf" and call.args[1] == 1
        )

        resolution = await resolver.resolve(TOKEN, [1, 2])

        assert resolution.error.source == "extension_resolver.stage1"


class TestSnapshotAndSubscribe:
    @pytest.mark.asyncio
    async def test_snapshot_pending_until_resolved(self, resolver, chain):
        chain.bind(TOKEN, 2, PLUGIN_P, FACTORY_F)

        before = resolver.snapshot(TOKEN, [1, 2])
        assert before.is_pending
        assert all(not b.resolved for b in before.bindings)

        await resolver.resolve(TOKEN, [1, 2])

        after = resolver.snapshot(TOKEN, [1, 2])
        assert not after.is_pending
        assert after.bindings[1].factory_address == FACTORY_F

    def test_snapshot_issues_no_reads(self, resolver, transport):
        resolver.snapshot(TOKEN, [1, 2, 3])
        assert transport.round_trips == 0

    @pytest.mark.asyncio
    async def test_subscribe_receives_written_ids(self, resolver, chain):
        chain.bind(TOKEN, 2, PLUGIN_P, FACTORY_F)
        chain.failing_addresses.add(PLUGIN_P)
        seen = []

        resolver.subscribe(lambda token, ids: seen.append((token, ids)))
        await resolver.resolve(TOKEN, [1, 2, 3])

        assert seen == [(TOKEN, [1, 3])]

    @pytest.mark.asyncio
    async def test_no_callback_on_full_cache_hit(self, resolver):
        seen = []
        await resolver.resolve(TOKEN, [1])
        resolver.subscribe(lambda token, ids: seen.append(ids))

        await resolver.resolve(TOKEN, [1])

        assert seen == []

    @pytest.mark.asyncio
    async def test_unsubscribe(self, resolver):
        seen = []
        unsubscribe = resolver.subscribe(lambda t, ids: seen.append(ids))
        unsubscribe()

        await resolver.resolve(TOKEN, [1])

        assert seen == []

    @pytest.mark.asyncio
    async def test_callback_error_does_not_propagate(self, resolver):
        def broken(token, ids):
            raise RuntimeError("ui went away")

        resolver.subscribe(broken)
        resolution = await resolver.resolve(TOKEN, [1])

        assert resolution.error is None

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(
        self, resolver, transport, chain
    ):
        await resolver.resolve(TOKEN, [1])
        chain.bind(TOKEN, 1, PLUGIN_P, FACTORY_F)
        resolver.invalidate(TOKEN, 1)
        transport.reset()

        resolution = await resolver.resolve(TOKEN, [1])

        assert transport.batch_sizes() == [1, 1]
        assert resolution.bindings[0].extension_address == PLUGIN_P
