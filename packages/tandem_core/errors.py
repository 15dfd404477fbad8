"""Error taxonomy for Tandem operations.

Every failure an orchestrated operation can report is a TandemError
subclass so the boundary layer can map it to a structured outcome.

Execution Context:
    Library module - imported by driver, snapshot, and orchestrator modules

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations


# ---- Base Error ---------------------------------------------------------------------------------------------


class TandemError(Exception):
    """Base class for all Tandem errors."""


# ---- Request Errors -----------------------------------------------------------------------------------------


class ValidationError(TandemError):
    """Required input is missing or empty; raised before any mutation."""


class NothingToDoError(TandemError):
    """Request carries no actionable intent; nothing was mutated."""


class PolicyViolation(TandemError):
    """Request breaks a precondition and is refused without side effects."""


# ---- Driver Errors ------------------------------------------------------------------------------------------


class DriverError(TandemError):
    """Repository or snapshot driver reported a failure.

    Attributes:
        command: Command that failed, if known.
        output: Captured output from the failing command.
    """

    def __init__(
            self,
            message: str,
            command: list[str] | None = None,
            output: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command or []
        self.output = output


class MergeConflictError(DriverError):
    """Merge or pull stopped on conflicting changes."""


class RemoteError(DriverError):
    """Fetch, pull, or push against the remote failed."""
