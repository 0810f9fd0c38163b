"""
Persistent cache of extension bindings.

One entry per (token, action id) under the "love20:extension:" namespace,
holding {"extensionAddress", "factoryAddress"}. The zero address in
extensionAddress is a valid hit meaning "no extension".
"""

from typing import Optional

from love20_toolkit.extensions.models import ExtensionBinding
from love20_toolkit.shared.constants import (
    ZERO_ADDRESS,
    CacheConstants,
    is_zero_address,
)
from love20_toolkit.shared.logging import get_logger
from love20_toolkit.utils.cache import FileKeyValueStore, TTLCacheStore

logger = get_logger(__name__)


def _is_binding_value(value) -> bool:
    """Shape check for a stored binding; anything else is corruption."""
    if not isinstance(value, dict):
        return False
    if not isinstance(value.get("extensionAddress"), str):
        return False
    factory_address = value.get("factoryAddress")
    return factory_address is None or isinstance(factory_address, str)


def binding_key(token_address: str, action_id: int) -> str:
    """Key inside the extension namespace."""
    return f"{token_address.lower()}:{int(action_id)}"


def extension_cache_key(token_address: str, action_id: int) -> str:
    """Full storage key, namespace included."""
    return CacheConstants.EXTENSION_KEY_PREFIX + binding_key(
        token_address, action_id
    )


class ExtensionBindingCache:
    """Reads, validates and writes ExtensionBinding cache entries."""

    def __init__(self, store: Optional[TTLCacheStore] = None):
        self.store = store or TTLCacheStore(
            FileKeyValueStore(), CacheConstants.EXTENSION_KEY_PREFIX
        )

    def get(
        self, token_address: str, action_id: int
    ) -> Optional[ExtensionBinding]:
        """
        Return a valid cached binding, or None.

        An entry with a non-zero extension but a zero factory was written by
        a run interrupted between the two reads; it is evicted and reported
        as a miss.
        """
        key = binding_key(token_address, action_id)
        entry = self.store.get(key)
        if entry is None:
            return None

        value = entry.value
        if not _is_binding_value(value):
            logger.warning(f"Malformed extension cache entry {entry.key}")
            self.store.remove(key)
            return None

        extension_address = value.get("extensionAddress")
        factory_address = value.get("factoryAddress")

        if is_zero_address(extension_address):
            return ExtensionBinding.not_extension(int(action_id))

        if is_zero_address(factory_address):
            logger.info(
                f"Evicting incomplete extension cache entry {entry.key}"
            )
            self.store.remove(key)
            return None

        return ExtensionBinding.bound(
            int(action_id), extension_address, factory_address
        )

    def put(self, token_address: str, binding: ExtensionBinding) -> bool:
        """Write a complete binding; incomplete ones are refused."""
        if not binding.is_complete:
            logger.debug(
                f"Not caching incomplete binding for action {binding.action_id}"
            )
            return False

        if binding.is_extension:
            value = {
                "extensionAddress": binding.extension_address,
                "factoryAddress": binding.factory_address,
            }
        else:
            value = {
                "extensionAddress": ZERO_ADDRESS,
                "factoryAddress": ZERO_ADDRESS,
            }
        self.store.set(binding_key(token_address, binding.action_id), value)
        return True

    def invalidate(self, token_address: str, action_id: int) -> None:
        self.store.remove(binding_key(token_address, action_id))

    def clear(self) -> None:
        self.store.clear()
