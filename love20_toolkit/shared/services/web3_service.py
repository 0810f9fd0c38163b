"""
Web3 Service module holding per-chain connections.

This module provides a Web3Service class that owns the Web3 connection the
read transport runs its multicall batches against.
"""

from typing import Dict, Optional

from web3 import Web3

from love20_toolkit.shared.constants import GlobalConstants


class Web3Service:
    """
    A service class for managing Web3 connections.

    One instance per chain; use get_instance() to share connections across
    resolvers and aggregators.
    """

    _instances: Dict[int, "Web3Service"] = {}

    def __init__(
        self,
        chain_id: int,
        rpc_url: str,
    ):
        """
        Initialize the Web3Service.

        Args:
            chain_id (int): The chain ID to use.
            rpc_url (str): The RPC URL to use.
        """
        self.chain_id = chain_id
        self.w3 = self._initialize_web3(rpc_url)

    def _initialize_web3(self, rpc_url: str) -> Web3:
        """Initialize Web3 instance with middleware if needed"""
        w3 = Web3(Web3.HTTPProvider(rpc_url))

        # Add POA middleware for non-mainnet chains
        if self.chain_id != 1:
            from web3.middleware import ExtraDataToPOAMiddleware

            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        return w3

    @classmethod
    def get_instance(cls, chain_id: Optional[int] = None) -> "Web3Service":
        """Get or create a Web3Service instance for a specific chain"""
        if chain_id is None:
            chain_id = GlobalConstants.get_chain_id()

        if chain_id not in cls._instances:
            rpc_url = GlobalConstants.get_rpc_url(chain_id)
            cls._instances[chain_id] = cls(chain_id, rpc_url)

        return cls._instances[chain_id]

    @classmethod
    def reset_instances(cls) -> None:
        """Drop cached connections (used when the RPC config changes)."""
        cls._instances = {}
