"""
Batched remote reads.

A batch is a list of ReadCall objects; the transport answers with a list of
ReadResult objects index-aligned to the request. A failed call is reported in
its ReadResult, the transport itself never raises for a remote failure.

MulticallTransport packs a batch into one Multicall3 aggregate through
w3multicall. If the aggregate fails (one reverting call fails the whole
batch) every call is retried on its own so the good ones still come back.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from eth_utils import to_checksum_address
from w3multicall.multicall import W3Multicall

from love20_toolkit.shared.exceptions import RemoteReadException
from love20_toolkit.shared.logging import get_logger
from love20_toolkit.shared.retry import RPC_RETRY_CONFIG, RetryConfig
from love20_toolkit.shared.services.web3_service import Web3Service

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReadCall:
    """One remote read: target address, selector with return types, args."""

    address: str
    signature: str
    args: Tuple[Any, ...] = ()
    label: str = ""

    def describe(self) -> str:
        return self.label or self.signature.split("(")[0]


@dataclass
class ReadResult:
    """Outcome of one ReadCall."""

    value: Any = None
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: Any) -> "ReadResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "ReadResult":
        return cls(error=error)


class ReadTransport(ABC):
    """Executes batches of remote reads."""

    @abstractmethod
    async def read_batch(self, calls: Sequence[ReadCall]) -> List[ReadResult]:
        """Run every call; results are index-aligned with ``calls``."""


class MulticallTransport(ReadTransport):
    """
    ReadTransport backed by Multicall3 over a Web3 connection.

    The blocking multicall runs in the default executor so the event loop
    stays free. Transient RPC errors are retried with RPC_RETRY_CONFIG.
    """

    def __init__(
        self,
        web3_service: Optional[Web3Service] = None,
        chain_id: Optional[int] = None,
        retry_config: RetryConfig = RPC_RETRY_CONFIG,
    ):
        # Raises ConfigurationException here when no RPC URL is configured
        self.web3_service = web3_service or Web3Service.get_instance(chain_id)
        self.retry_config = retry_config

    async def read_batch(self, calls: Sequence[ReadCall]) -> List[ReadResult]:
        calls = list(calls)
        if not calls:
            return []

        logger.debug(f"Multicall batch of {len(calls)} reads")
        try:
            values = await self.retry_config.run(
                self._execute,
                calls,
                operation_name=f"multicall[{len(calls)}]",
            )
            return [ReadResult.ok(value) for value in values]
        except Exception as e:
            if len(calls) == 1:
                return [ReadResult.failure(self._wrap_error(calls[0], e))]
            logger.warning(
                f"Multicall batch of {len(calls)} failed ({e}), "
                "retrying calls individually"
            )

        results: List[ReadResult] = []
        for call in calls:
            try:
                values = await self.retry_config.run(
                    self._execute, [call], operation_name=call.describe()
                )
                results.append(ReadResult.ok(values[0]))
            except Exception as e:
                logger.warning(
                    f"Read {call.describe()} on {call.address} failed: {e}"
                )
                results.append(ReadResult.failure(self._wrap_error(call, e)))
        return results

    async def _execute(self, calls: List[ReadCall]) -> List[Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._call_sync, calls)

    def _call_sync(self, calls: List[ReadCall]) -> List[Any]:
        multicall = W3Multicall(self.web3_service.w3)
        for call in calls:
            multicall.add(
                W3Multicall.Call(
                    to_checksum_address(call.address.lower()),
                    call.signature,
                    list(call.args),
                )
            )
        return multicall.call()

    @staticmethod
    def _wrap_error(call: ReadCall, error: Exception) -> RemoteReadException:
        if isinstance(error, RemoteReadException):
            return error
        return RemoteReadException(
            f"{call.describe()} failed: {error}",
            address=call.address,
            signature=call.signature,
        )
