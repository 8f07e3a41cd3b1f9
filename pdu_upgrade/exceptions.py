"""
Error taxonomy for the PDU upgrade workflow.

Every error is fatal to the device being processed, never to the batch.
The workflow stamps the offending host and the step name onto the error
before reporting it, so the operator always sees where things went wrong.
"""

from __future__ import annotations


class PduUpgradeError(Exception):
    """Base class for all per-device failures."""

    def __init__(self, message: str, host: str | None = None, step: str | None = None):
        super().__init__(message)
        self.message = message
        self.host = host
        self.step = step

    def __str__(self) -> str:
        prefix = ""
        if self.host:
            prefix += f"[{self.host}] "
        if self.step:
            prefix += f"{self.step}: "
        return f"{prefix}{self.message}"


class ConnectError(PduUpgradeError):
    """Device unreachable, authentication failed, or name did not resolve."""


class ProtocolError(PduUpgradeError):
    """The shell is in a state the bridge cannot make sense of."""


class PromptTimeoutError(PduUpgradeError, TimeoutError):
    """The expected prompt never showed up within the timeout."""


class ClassificationError(PduUpgradeError):
    """Unrecognized prompt or a required field missing from device output."""


class TransferError(PduUpgradeError):
    """Version descriptor or firmware binary could not be fetched or pushed."""


class UpgradeError(PduUpgradeError):
    """A command failed mid-script or the device did not behave as expected."""
