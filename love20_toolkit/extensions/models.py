"""Extension binding data models."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from love20_toolkit.shared.results import ProcessingError


@dataclass(frozen=True)
class ExtensionBinding:
    """
    Whether an action delegates to a plugin, and to which one.

    extension_address is set iff is_extension. factory_address is set iff
    the plugin's factory was read successfully; a binding with an extension
    but no factory is incomplete and never cached.

    resolved=False marks a placeholder for an action whose binding is not
    known yet (cache miss before resolve, or failed extension read).
    """

    action_id: int
    is_extension: bool = False
    extension_address: Optional[str] = None
    factory_address: Optional[str] = None
    resolved: bool = True

    @classmethod
    def not_extension(cls, action_id: int) -> "ExtensionBinding":
        return cls(action_id=action_id)

    @classmethod
    def bound(
        cls,
        action_id: int,
        extension_address: str,
        factory_address: Optional[str],
    ) -> "ExtensionBinding":
        return cls(
            action_id=action_id,
            is_extension=True,
            extension_address=extension_address,
            factory_address=factory_address,
        )

    @classmethod
    def unresolved(cls, action_id: int) -> "ExtensionBinding":
        return cls(action_id=action_id, resolved=False)

    @property
    def is_complete(self) -> bool:
        """True when the binding may be written to the cache."""
        if not self.resolved:
            return False
        if not self.is_extension:
            return True
        return bool(self.extension_address) and bool(self.factory_address)


@dataclass
class ExtensionResolution:
    """Bindings index-aligned with the requested action ids."""

    bindings: List[ExtensionBinding]
    is_pending: bool = False
    error: Optional[ProcessingError] = None

    @property
    def extension_bindings(self) -> List[ExtensionBinding]:
        return [b for b in self.bindings if b.is_extension]


class ExtensionType(Enum):
    """Plugin kinds, identified by the factory that created them."""

    LP = "LP"
    GROUP_ACTION = "GROUP_ACTION"
    GROUP_SERVICE = "GROUP_SERVICE"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ExtensionConfig:
    type: ExtensionType
    name: str
    factory_address: str


@dataclass(frozen=True)
class ExtensionContractInfo:
    """A binding enriched with the factory's kind and display name."""

    action_id: int
    is_extension: bool
    extension_address: Optional[str] = None
    factory: Optional[ExtensionConfig] = None

    @property
    def type(self) -> Optional[ExtensionType]:
        return self.factory.type if self.factory else None
