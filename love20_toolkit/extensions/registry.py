"""Known plugin factories, configured through LOVE20_EXTENSION_* variables."""

import os
from typing import List, Optional

from love20_toolkit.extensions.models import (
    ExtensionBinding,
    ExtensionConfig,
    ExtensionContractInfo,
    ExtensionType,
)
from love20_toolkit.shared.constants import ExtensionFactoryConstants

UNKNOWN_FACTORY_NAME = "Unknown"

_FACTORY_ENV = [
    (ExtensionType.LP, "LP Action", ExtensionFactoryConstants.LP),
    (
        ExtensionType.GROUP_ACTION,
        "Group Action",
        ExtensionFactoryConstants.GROUP_ACTION,
    ),
    (
        ExtensionType.GROUP_SERVICE,
        "Group Service Action",
        ExtensionFactoryConstants.GROUP_SERVICE,
    ),
]


def get_extension_configs() -> List[ExtensionConfig]:
    """All factories that have an address configured."""
    configs = []
    for ext_type, name, env_var in _FACTORY_ENV:
        factory_address = os.getenv(env_var)
        if factory_address:
            configs.append(
                ExtensionConfig(
                    type=ext_type,
                    name=name,
                    factory_address=factory_address,
                )
            )
    return configs


def get_extension_config_by_factory(
    factory_address: Optional[str],
) -> Optional[ExtensionConfig]:
    if not factory_address:
        return None
    factory_lower = factory_address.lower()
    for config in get_extension_configs():
        if config.factory_address.lower() == factory_lower:
            return config
    return None


def describe_binding(binding: ExtensionBinding) -> ExtensionContractInfo:
    """
    Attach the factory's kind and name to a binding.

    Complete bindings whose factory is not in the registry are still
    extensions; they are reported with kind UNKNOWN. Incomplete bindings
    are reported as not-an-extension until their factory is known.
    """
    if not (binding.is_extension and binding.is_complete):
        return ExtensionContractInfo(
            action_id=binding.action_id, is_extension=False
        )

    config = get_extension_config_by_factory(binding.factory_address)
    if config is None:
        config = ExtensionConfig(
            type=ExtensionType.UNKNOWN,
            name=UNKNOWN_FACTORY_NAME,
            factory_address=binding.factory_address,
        )
    return ExtensionContractInfo(
        action_id=binding.action_id,
        is_extension=True,
        extension_address=binding.extension_address,
        factory=config,
    )
