"""Failure taxonomy shared by the connectivity probes.

Client adapters translate library-specific exceptions into these types at their
boundary, so probes and the outcome classifier never import a driver's exceptions.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    CONFIGURATION_MISSING = "configuration_missing"
    CONNECTION_FAILURE = "connection_failure"
    OPERATION_TIMEOUT = "operation_timeout"
    REMOTE_PROTOCOL_ERROR = "remote_protocol_error"
    UNEXPECTED = "unexpected"


class ProbeError(Exception):
    """Base class for failures raised by dependency client adapters."""

    kind: ErrorKind = ErrorKind.UNEXPECTED


class ConfigurationMissing(ProbeError):
    """Required configuration or a native client capability is absent."""

    kind = ErrorKind.CONFIGURATION_MISSING


class ConnectionFailure(ProbeError):
    """The remote system could not be reached."""

    kind = ErrorKind.CONNECTION_FAILURE


class OperationTimeout(ProbeError):
    """A bounded wait on the remote system ran out."""

    kind = ErrorKind.OPERATION_TIMEOUT


class RemoteProtocolError(ProbeError):
    """The remote system answered with a non-timeout error."""

    kind = ErrorKind.REMOTE_PROTOCOL_ERROR


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map any exception onto the probe failure taxonomy."""
    if isinstance(exc, ProbeError):
        return exc.kind
    if isinstance(exc, TimeoutError):
        return ErrorKind.OPERATION_TIMEOUT
    if isinstance(exc, OSError):
        return ErrorKind.CONNECTION_FAILURE
    return ErrorKind.UNEXPECTED
