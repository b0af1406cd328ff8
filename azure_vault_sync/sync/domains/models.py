"""Domain models for secret synchronization."""
from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Dict, Iterator, List, Optional


@dataclass(frozen=True)
class Secret:
    """A secret read from the source store."""
    name: str
    value: str

    def __repr__(self) -> str:
        # Keep values out of logs and tracebacks
        return f"Secret(name={self.name!r}, value='***')"


class OutcomeKind(str, Enum):
    """Result of transferring a single secret."""

    WRITTEN = "written"
    SKIPPED_EXISTING = "skipped_existing"
    READ_FAILED = "read_failed"
    WRITE_FAILED = "write_failed"


@dataclass(frozen=True)
class TransferOutcome:
    """Per-secret result of a sync pass."""
    name: str
    kind: OutcomeKind
    reason: Optional[str] = None

    @classmethod
    def written(cls, name: str) -> "TransferOutcome":
        return cls(name, OutcomeKind.WRITTEN)

    @classmethod
    def skipped_existing(cls, name: str) -> "TransferOutcome":
        return cls(name, OutcomeKind.SKIPPED_EXISTING)

    @classmethod
    def read_failed(cls, name: str, reason: str) -> "TransferOutcome":
        return cls(name, OutcomeKind.READ_FAILED, reason)

    @classmethod
    def write_failed(cls, name: str, reason: str) -> "TransferOutcome":
        return cls(name, OutcomeKind.WRITE_FAILED, reason)

    @property
    def is_failure(self) -> bool:
        return self.kind in (OutcomeKind.READ_FAILED, OutcomeKind.WRITE_FAILED)

    def describe(self) -> str:
        """Render the outcome as a single human-readable line."""
        if self.kind is OutcomeKind.WRITTEN:
            return f"Secret '{self.name}' transferred successfully!"
        if self.kind is OutcomeKind.SKIPPED_EXISTING:
            return f"Secret '{self.name}' already exists in Vault and overwrite is disabled. Skipping."
        if self.kind is OutcomeKind.READ_FAILED:
            return f"Failed to retrieve secret '{self.name}': {self.reason}"
        return f"Error transferring secret '{self.name}': {self.reason}"


@dataclass
class SecretBatch:
    """
    Secrets produced by one enumeration of the source store.

    Successful reads are kept in enumeration order; read failures are kept
    alongside so the engine can report them.
    """
    secrets: List[Secret] = field(default_factory=list)
    failures: List[TransferOutcome] = field(default_factory=list)

    def add(self, secret: Secret) -> bool:
        """
        Append a secret unless its name is already in the batch.

        Returns:
            True if the secret was added, False if it was a duplicate
        """
        if any(existing.name == secret.name for existing in self.secrets):
            self.failures.append(
                TransferOutcome.read_failed(secret.name, "duplicate secret name in enumeration")
            )
            return False
        self.secrets.append(secret)
        return True

    def fail(self, name: str, reason: str) -> TransferOutcome:
        outcome = TransferOutcome.read_failed(name, reason)
        self.failures.append(outcome)
        return outcome

    def names(self) -> List[str]:
        return [secret.name for secret in self.secrets]

    def __iter__(self) -> Iterator[Secret]:
        return iter(self.secrets)

    def __len__(self) -> int:
        return len(self.secrets)


@dataclass
class PassSummary:
    """Aggregated outcomes of one sync pass."""
    outcomes: List[TransferOutcome] = field(default_factory=list)
    retrieved: int = 0
    aborted: Optional[str] = None
    cancelled: bool = False

    def record(self, outcome: TransferOutcome) -> None:
        self.outcomes.append(outcome)

    def count(self, kind: OutcomeKind) -> int:
        return sum(1 for outcome in self.outcomes if outcome.kind is kind)

    @property
    def counts(self) -> Dict[OutcomeKind, int]:
        return {kind: self.count(kind) for kind in OutcomeKind}

    @property
    def written(self) -> int:
        return self.count(OutcomeKind.WRITTEN)

    @property
    def skipped(self) -> int:
        return self.count(OutcomeKind.SKIPPED_EXISTING)

    @property
    def read_failed(self) -> int:
        return self.count(OutcomeKind.READ_FAILED)

    @property
    def write_failed(self) -> int:
        return self.count(OutcomeKind.WRITE_FAILED)

    @property
    def ok(self) -> bool:
        """True when the pass ran to completion, even if some secrets failed."""
        return self.aborted is None

    def describe(self) -> str:
        if self.aborted:
            return f"Sync pass aborted: {self.aborted}"
        line = (
            f"Sync pass complete: {self.written} written, {self.skipped} skipped, "
            f"{self.read_failed} read failures, {self.write_failed} write failures"
        )
        if self.cancelled:
            line += " (cancelled before all secrets were processed)"
        return line


@dataclass
class ScheduleState:
    """State owned by one recurring scheduler loop. Never persisted."""
    daily_time: time
    last_computed_next_run: Optional[datetime] = None


@dataclass
class VaultSettings:
    """HashiCorp Vault (destination) connection settings."""
    address: str
    token: str = ""
    mount_point: str = "secret"
    timeout: float = 30.0
    strict_probe: bool = False


@dataclass
class AzureSettings:
    """Azure Key Vault (source) connection settings."""
    url: str
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    timeout: float = 30.0


@dataclass
class SyncSettings:
    """Everything a sync run needs, after normalization."""
    vault: VaultSettings
    azure: AzureSettings
    overwrite: bool = False
    schedule_time: Optional[time] = None
