"""
Exception hierarchy for the LOVE20 toolkit.

Exception Categories:
- RetryableException: Transient failures that may succeed on retry (RPC, network)
- NonRetryableException: Permanent failures that won't benefit from retry (bad data)
- ConfigurationException: Startup/config errors that prevent operation

Concrete exceptions:
- RemoteReadException -> RetryableException (a contract read failed or reverted)
- CacheCorruptionException -> NonRetryableException (unreadable cache entry)
- ContractDecodeException -> NonRetryableException (unexpected response layout)
"""


class RetryableException(Exception):
    """
    Base class for exceptions that may succeed on retry.

    Use for transient failures like:
    - RPC timeouts
    - Rate limiting
    - Temporary network issues
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NonRetryableException(Exception):
    """
    Base class for exceptions that won't benefit from retry.

    Use for permanent failures like:
    - Invalid input data
    - Malformed contract responses
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationException(NonRetryableException):
    """
    Exception for configuration/startup errors.

    Use when:
    - Required environment variables are missing
    - Contract addresses are not configured
    """

    pass


class RemoteReadException(RetryableException):
    """
    Exception for a failed remote contract read.

    Carries the target address and selector so the caller can tell which
    call of a batch failed.
    """

    def __init__(self, message: str, address: str = "", signature: str = ""):
        super().__init__(message)
        self.address = address
        self.signature = signature


class CacheCorruptionException(NonRetryableException):
    """
    Exception for a cache entry that cannot be decoded.

    Never escapes the cache layer: the entry is dropped and treated as a miss.
    """

    pass


class ContractDecodeException(NonRetryableException):
    """
    Exception for a contract answer whose shape does not match the layout
    the reader expects.
    """

    pass
