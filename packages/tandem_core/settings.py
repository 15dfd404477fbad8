"""Policy settings for Tandem.

Named boolean and string flags stored in the repository's git config
under the ``tandem`` namespace.

Execution Context:
    Library module - imported by orchestrator and CLI config command

Dependencies:
    - tandem_core.driver: git config access

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

from tandem_core.driver import RepositoryDriver


# ---- Constants ----------------------------------------------------------------------------------------------


NAMESPACE = "tandem"

IMPORT_CHECKOUTS = "import-checkouts"
IMPORT_PULLS = "import-pulls"
AUTO_PUSH = "auto-push"
LAST_DB_BACKUP = "last-db-backup"

FLAGS = (IMPORT_CHECKOUTS, IMPORT_PULLS, AUTO_PUSH)
TRUE_VALUES = {"true", "yes", "on", "1"}


# ---- Policy Settings ----------------------------------------------------------------------------------------


class PolicySettings:
    """Read and write policy flags through the repository driver.

    Attributes:
        driver: Repository driver holding the git config.
        namespace: Config section the flags live under.
    """

    def __init__(
            self,
            driver: RepositoryDriver,
            namespace: str = NAMESPACE,
    ) -> None:
        self.driver = driver
        self.namespace = namespace

    def get(
            self,
            key: str,
            default: str | None = None,
    ) -> str | None:
        value = self.driver.get_config(self.namespace, key)
        return default if value is None else value

    def set(
            self,
            key: str,
            value: str,
    ) -> None:
        self.driver.set_config(self.namespace, key, value)

    def is_enabled(
            self,
            key: str,
    ) -> bool:
        """Check whether a boolean flag is switched on.

        Args:
            key: Flag name.

        Returns:
            True for true/yes/on/1 (case-insensitive); False when unset.
        """
        value = self.get(key)
        return value is not None and value.strip().lower() in TRUE_VALUES

    def set_flag(
            self,
            key: str,
            enabled: bool,
    ) -> None:
        self.set(key, "true" if enabled else "false")

    @property
    def last_snapshot(self) -> str | None:
        return self.get(LAST_DB_BACKUP)

    def as_dict(self) -> dict[str, str | None]:
        return {key: self.get(key) for key in (*FLAGS, LAST_DB_BACKUP)}
