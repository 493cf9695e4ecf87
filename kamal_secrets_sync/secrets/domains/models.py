"""Domain models for secret reconciliation."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

SKIP_REASON_NOT_IN_SOURCE = "not found in source"


class PlanAction(str, Enum):
    """What a plan entry does to the registry."""
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


class OutcomeStatus(str, Enum):
    """Result of executing a single plan entry."""
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ProjectHandle:
    """A registry project (namespace) resolved by name.

    ``id`` is None for a project that was looked up but not created.
    """
    name: str
    id: Optional[str]

    @property
    def exists(self) -> bool:
        return self.id is not None

    def describe(self) -> str:
        return f"{self.name} ({self.id if self.exists else 'would be created'})"


@dataclass(frozen=True)
class PlanEntry:
    """One reconciliation decision for a required key.

    ``value`` is excluded from ``repr`` so plans can be logged safely.
    """
    action: PlanAction
    key: str
    value: Optional[str] = field(default=None, repr=False)
    remote_id: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def create(cls, key: str, value: str) -> "PlanEntry":
        return cls(PlanAction.CREATE, key, value=value)

    @classmethod
    def update(cls, key: str, value: str, remote_id: str) -> "PlanEntry":
        return cls(PlanAction.UPDATE, key, value=value, remote_id=remote_id)

    @classmethod
    def skip(cls, key: str, reason: str = SKIP_REASON_NOT_IN_SOURCE) -> "PlanEntry":
        return cls(PlanAction.SKIP, key, reason=reason)


@dataclass(frozen=True)
class ReconciliationPlan:
    """Ordered plan entries, one per required key."""
    entries: Tuple[PlanEntry, ...] = ()

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def _by_action(self, action: PlanAction) -> Tuple[PlanEntry, ...]:
        return tuple(entry for entry in self.entries if entry.action == action)

    @property
    def creates(self) -> Tuple[PlanEntry, ...]:
        return self._by_action(PlanAction.CREATE)

    @property
    def updates(self) -> Tuple[PlanEntry, ...]:
        return self._by_action(PlanAction.UPDATE)

    @property
    def skips(self) -> Tuple[PlanEntry, ...]:
        return self._by_action(PlanAction.SKIP)

    def describe(self) -> str:
        """Render the plan as one line per entry, without values."""
        if not self.entries:
            return "Plan: nothing to do (no secrets declared)"
        lines = [f"Plan: {len(self.creates)} to create, {len(self.updates)} to update, "
                 f"{len(self.skips)} to skip"]
        for entry in self.entries:
            if entry.action == PlanAction.SKIP:
                lines.append(f"  skip    {entry.key} ({entry.reason})")
            elif entry.action == PlanAction.UPDATE:
                lines.append(f"  update  {entry.key} (id {entry.remote_id})")
            else:
                lines.append(f"  create  {entry.key}")
        return "\n".join(lines)


@dataclass(frozen=True)
class EntryOutcome:
    """Outcome of one plan entry."""
    key: str
    action: PlanAction
    status: OutcomeStatus
    reason: Optional[str] = None


@dataclass(frozen=True)
class ApplyReport:
    """Per-entry outcomes of applying a plan, in plan order."""
    outcomes: Tuple[EntryOutcome, ...] = ()

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def applied(self) -> int:
        return self._count(OutcomeStatus.APPLIED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def failures(self) -> Tuple[EntryOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status == OutcomeStatus.FAILED)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def counts(self) -> dict:
        return {"applied": self.applied, "skipped": self.skipped, "failed": self.failed}

    def summary(self) -> str:
        """Human-readable end-of-run summary."""
        lines = [f"Applied: {self.applied}, Skipped: {self.skipped}, Failed: {self.failed}"]
        skipped = [o for o in self.outcomes if o.status == OutcomeStatus.SKIPPED]
        if skipped:
            lines.append("Skipped:")
            lines.extend(f"  {o.key}: {o.reason}" for o in skipped)
        if self.failures:
            lines.append("Failed:")
            lines.extend(f"  {o.key}: {o.reason}" for o in self.failures)
        return "\n".join(lines)


@dataclass(frozen=True)
class SyncSettings:
    """Resolved settings for one synchronisation run."""
    project: Optional[str]
    manifest_path: str = "config/deploy.yml"
    env_file: str = ".env"
    reference_path: str = ".kamal/secrets"
    timeout: float = 30.0
    credential_key: str = "KAMAL_REGISTRY_PASSWORD"
    access_token_env: str = "BWS_ACCESS_TOKEN"


@dataclass(frozen=True)
class SyncResult:
    """Everything a run produced."""
    project: ProjectHandle
    plan: ReconciliationPlan
    report: Optional[ApplyReport] = None
    reference_path: Optional[str] = None
