from love20_toolkit.utils.cache import (
    FileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    TTLCacheStore,
)

__all__ = [
    "FileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "TTLCacheStore",
]
