from love20_toolkit.extensions.cache import ExtensionBindingCache
from love20_toolkit.extensions.models import (
    ExtensionBinding,
    ExtensionContractInfo,
    ExtensionResolution,
    ExtensionType,
)
from love20_toolkit.extensions.registry import (
    describe_binding,
    get_extension_config_by_factory,
    get_extension_configs,
)
from love20_toolkit.extensions.resolver import ExtensionResolver

__all__ = [
    "ExtensionBinding",
    "ExtensionBindingCache",
    "ExtensionContractInfo",
    "ExtensionResolution",
    "ExtensionResolver",
    "ExtensionType",
    "describe_binding",
    "get_extension_config_by_factory",
    "get_extension_configs",
]
