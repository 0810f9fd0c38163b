"""
Unit tests for the retry utilities module.
"""

from unittest.mock import AsyncMock, patch

import pytest
from web3.exceptions import Web3Exception

from love20_toolkit.shared.exceptions import (
    NonRetryableException,
    RemoteReadException,
    RetryableException,
)
from love20_toolkit.shared.retry import (
    NO_RETRY_CONFIG,
    RPC_RETRY_CONFIG,
    RetryConfig,
    retry_async_operation,
)


class TestRetryAsyncOperation:
    """Tests for retry_async_operation."""

    @pytest.mark.asyncio
    async def test_succeeds_first_try(self):
        operation = AsyncMock(return_value="success")

        result = await retry_async_operation(operation, max_attempts=3)

        assert result == "success"
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_succeeds_after_retry(self):
        """Fails twice with a retryable error, then succeeds."""
        operation = AsyncMock(
            side_effect=[
                RetryableException("fail"),
                ConnectionError("reset"),
                "success",
            ]
        )

        result = await retry_async_operation(
            operation, max_attempts=3, base_delay=0.01
        )

        assert result == "success"
        assert operation.call_count == 3

    @pytest.mark.asyncio
    async def test_fails_after_max_attempts(self):
        operation = AsyncMock(side_effect=RemoteReadException("always fail"))

        with pytest.raises(RemoteReadException, match="always fail"):
            await retry_async_operation(
                operation, max_attempts=3, base_delay=0.01
            )

        assert operation.call_count == 3

    @pytest.mark.asyncio
    async def test_non_retryable_propagates_immediately(self):
        operation = AsyncMock(side_effect=NonRetryableException("bad data"))

        with pytest.raises(NonRetryableException):
            await retry_async_operation(
                operation, max_attempts=5, base_delay=0.01
            )

        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_unlisted_exception_not_retried(self):
        operation = AsyncMock(side_effect=KeyError("missing"))

        with pytest.raises(KeyError):
            await retry_async_operation(
                operation, max_attempts=3, base_delay=0.01
            )

        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_web3_exception_is_retried(self):
        operation = AsyncMock(side_effect=[Web3Exception("rpc"), 7])

        result = await retry_async_operation(
            operation, max_attempts=2, base_delay=0.01
        )

        assert result == 7

    @pytest.mark.asyncio
    async def test_custom_retryable_exceptions(self):
        operation = AsyncMock(side_effect=[ValueError("flaky"), "ok"])

        result = await retry_async_operation(
            operation,
            max_attempts=2,
            base_delay=0.01,
            retryable_exceptions=(ValueError,),
        )

        assert result == "ok"

    @pytest.mark.asyncio
    async def test_passes_arguments_through(self):
        operation = AsyncMock(return_value="done")

        await retry_async_operation(operation, 1, 2, key="value")

        operation.assert_called_once_with(1, 2, key="value")

    @pytest.mark.asyncio
    async def test_exponential_backoff_delays(self):
        """Delays double per attempt and are capped at max_delay."""
        operation = AsyncMock(side_effect=RetryableException("fail"))

        with patch(
            "love20_toolkit.shared.retry.asyncio.sleep", new=AsyncMock()
        ) as mock_sleep:
            with pytest.raises(RetryableException):
                await retry_async_operation(
                    operation, max_attempts=4, base_delay=1.0, max_delay=3.0
                )

        delays = [call.args[0] for call in mock_sleep.call_args_list]
        assert delays == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_linear_backoff_delays(self):
        operation = AsyncMock(side_effect=RetryableException("fail"))

        with patch(
            "love20_toolkit.shared.retry.asyncio.sleep", new=AsyncMock()
        ) as mock_sleep:
            with pytest.raises(RetryableException):
                await retry_async_operation(
                    operation, max_attempts=3, base_delay=0.5, exponential=False
                )

        delays = [call.args[0] for call in mock_sleep.call_args_list]
        assert delays == [0.5, 0.5]


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_default_config(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 30.0
        assert config.exponential is True
        assert RetryableException in config.retryable_exceptions

    def test_custom_config(self):
        config = RetryConfig(
            max_attempts=5,
            base_delay=0.5,
            max_delay=60.0,
            exponential=False,
            retryable_exceptions=(ValueError,),
        )
        assert config.max_attempts == 5
        assert config.retryable_exceptions == (ValueError,)

    @pytest.mark.asyncio
    async def test_run_retries_with_config(self):
        operation = AsyncMock(side_effect=[TimeoutError("slow"), "ok"])
        config = RetryConfig(max_attempts=2, base_delay=0.01)

        result = await config.run(operation, "arg", operation_name="read")

        assert result == "ok"
        assert operation.call_count == 2
        operation.assert_called_with("arg")

    @pytest.mark.asyncio
    async def test_no_retry_config_runs_once(self):
        operation = AsyncMock(side_effect=RemoteReadException("down"))

        with pytest.raises(RemoteReadException):
            await NO_RETRY_CONFIG.run(operation)

        assert operation.call_count == 1


class TestPreConfiguredConfigs:
    """Tests for pre-configured retry configs."""

    def test_rpc_config(self):
        assert RPC_RETRY_CONFIG.max_attempts == 3
        assert RPC_RETRY_CONFIG.base_delay == 1.0
        assert RPC_RETRY_CONFIG.max_delay == 10.0

    def test_no_retry_config(self):
        assert NO_RETRY_CONFIG.max_attempts == 1
