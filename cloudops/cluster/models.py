"""Cleanup actions, targets and per-action results."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class CleanupAction(str, Enum):
    """Cleanup actions, in the order ``all`` runs them."""

    EVICTED = "evicted"
    FAILED = "failed"
    COMPLETED = "completed"
    JOBS = "jobs"
    STUCK_NAMESPACES = "stuck-ns"

    @property
    def description(self) -> str:
        return ACTION_DESCRIPTIONS[self]


ACTION_DESCRIPTIONS = {
    CleanupAction.EVICTED: "evicted pod(s)",
    CleanupAction.FAILED: "failed pod(s)",
    CleanupAction.COMPLETED: "completed pod(s)",
    CleanupAction.JOBS: "completed Job(s) without owner",
    CleanupAction.STUCK_NAMESPACES: "namespace(s) stuck in Terminating state",
}

ALL_ACTION = "all"
ACTION_CHOICES = [action.value for action in CleanupAction] + [ALL_ACTION]


def expand_actions(names: list[str]) -> list[CleanupAction]:
    """Expand ``all`` and drop repeats, keeping first-seen order.

    Raises:
        ValueError: If a name is not a known action
    """
    expanded: list[CleanupAction] = []
    for name in names:
        actions = list(CleanupAction) if name == ALL_ACTION else [CleanupAction(name)]
        for action in actions:
            if action not in expanded:
                expanded.append(action)
    return expanded


@dataclass(frozen=True)
class CleanupTarget:
    """A single resource selected for deletion."""

    name: str
    namespace: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}" if self.namespace else self.name


@dataclass
class CleanupResult:
    """Outcome of one cleanup action."""

    action: CleanupAction
    dry_run: bool = False
    found: list[CleanupTarget] = field(default_factory=list)
    deleted: list[CleanupTarget] = field(default_factory=list)
    failed: list[CleanupTarget] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["action"] = self.action.value
        for key in ("found", "deleted", "failed"):
            data[key] = [str(target) for target in getattr(self, key)]
        return data
