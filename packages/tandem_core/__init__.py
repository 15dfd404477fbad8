"""Tandem Core Library.

Keeps a git working tree and a companion SQLite data store consistent
across checkout, commit, branch, merge, pull, push, revert, and discard
operations.

Execution Context:
    Library package - imported by CLI and other applications

Dependencies:
    - git: Version control executable

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

from tandem_core.errors import DriverError
from tandem_core.errors import MergeConflictError
from tandem_core.errors import NothingToDoError
from tandem_core.errors import PolicyViolation
from tandem_core.errors import RemoteError
from tandem_core.errors import TandemError
from tandem_core.errors import ValidationError
from tandem_core.models import CommitRecord
from tandem_core.models import Outcome
from tandem_core.models import RepositoryState
from tandem_core.models import RevertScope
from tandem_core.models import SnapshotRecord
from tandem_core.orchestrator import Orchestrator

__version__ = "0.1.0"

__all__ = [
    "CommitRecord",
    "DriverError",
    "MergeConflictError",
    "NothingToDoError",
    "Orchestrator",
    "Outcome",
    "PolicyViolation",
    "RemoteError",
    "RepositoryState",
    "RevertScope",
    "SnapshotRecord",
    "TandemError",
    "ValidationError",
    "__version__",
]
