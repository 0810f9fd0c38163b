"""All constants for the project"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from love20_toolkit.shared.exceptions import ConfigurationException

load_dotenv()

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationException(
            f"{name} must be an integer, got {raw!r}"
        ) from e


class CacheConstants:
    """Persistent cache settings"""

    EXTENSION_KEY_PREFIX = "love20:extension:"
    DEFAULT_TTL = 3600
    DEFAULT_DIR = ".cache"

    @staticmethod
    def get_cache_dir() -> str:
        return os.getenv("LOVE20_CACHE_DIR") or CacheConstants.DEFAULT_DIR

    @staticmethod
    def get_ttl() -> int:
        return _env_int("LOVE20_CACHE_TTL", CacheConstants.DEFAULT_TTL)


class RewardConstants:
    """Vote-share thresholds used to flag rewarded actions"""

    # per-mille threshold * 10 = per-ten-thousand threshold
    PER_THOUSAND_TO_PER_TEN_THOUSAND = 10
    PER_TEN_THOUSAND = 10000

    @staticmethod
    def get_min_vote_per_thousand() -> int:
        return _env_int("LOVE20_ACTION_REWARD_MIN_VOTE_PER_THOUSAND", 0)


class GlobalConstants:
    """Global class constants for the project"""

    DEFAULT_CHAIN_ID = 1

    @staticmethod
    def get_chain_id() -> int:
        return _env_int("LOVE20_CHAIN_ID", GlobalConstants.DEFAULT_CHAIN_ID)

    @staticmethod
    def get_rpc_url(chain_id: Optional[int] = None) -> str:
        """Get RPC URL for the configured chain"""
        chain_id = (
            GlobalConstants.get_chain_id() if chain_id is None else chain_id
        )
        rpc_url = os.getenv("LOVE20_RPC_URL") or None
        if not rpc_url:
            raise ConfigurationException(
                f"RPC URL not set for chain {chain_id} (LOVE20_RPC_URL)"
            )
        return rpc_url


class ExtensionFactoryConstants:
    """Env variables naming the known plugin factories"""

    LP = "LOVE20_EXTENSION_LP_FACTORY"
    GROUP_ACTION = "LOVE20_EXTENSION_GROUP_ACTION_FACTORY"
    GROUP_SERVICE = "LOVE20_EXTENSION_GROUP_SERVICE_FACTORY"


@dataclass(frozen=True)
class ContractAddresses:
    """Protocol contracts read by the toolkit."""

    extension_center: str
    round_viewer: str
    join: str

    @classmethod
    def from_env(cls) -> "ContractAddresses":
        """
        Build the address set from LOVE20_* environment variables.

        Raises:
            ConfigurationException: If any address is missing.
        """
        values = {
            "extension_center": os.getenv("LOVE20_EXTENSION_CENTER_ADDRESS"),
            "round_viewer": os.getenv("LOVE20_ROUND_VIEWER_ADDRESS"),
            "join": os.getenv("LOVE20_JOIN_ADDRESS"),
        }
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ConfigurationException(
                f"Contract addresses not configured: {', '.join(missing)}"
            )
        return cls(**values)


def is_zero_address(address: Optional[str]) -> bool:
    """True for None, empty string, or the zero sentinel."""
    return not address or address.lower() == ZERO_ADDRESS
