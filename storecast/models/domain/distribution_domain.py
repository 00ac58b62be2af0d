# storecast/models/domain/distribution_domain.py
"""
Distribution Domain Models
Announcements (channel + post pairs), the metadata recovered from them and
the task fan-out shapes used while creating them.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class LifecycleStatus(str, Enum):
    DRAFT = "Draft"
    SCHEDULED = "Scheduled"
    PUBLISHED = "Published"

    @classmethod
    def from_post(cls, post: dict | None) -> "LifecycleStatus":
        """Derive status from the state of a channel's latest post."""
        if not post:
            return cls.DRAFT
        if post.get("published"):
            return cls.PUBLISHED
        if post.get("planned"):
            return cls.SCHEDULED
        return cls.DRAFT


@dataclass(slots=True)
class DistributionMetadata:
    """Department, target count and creation time decoded from a distribution."""

    generation: str
    department: str
    target_count: int
    created_at_ms: int | None = None
    display_title: str | None = None


@dataclass(slots=True)
class Distribution:
    """One announcement created by this system."""

    distribution_id: str
    title: str
    department: str
    target_count: int
    created_at: datetime
    lifecycle_status: LifecycleStatus = LifecycleStatus.DRAFT
    accessor_account_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class TaskSpecification:
    """One row of an uploaded task file."""

    title: str
    description: str = ""
    due_date: datetime | None = None

    def due_date_iso(self) -> str | None:
        if self.due_date is None:
            return None
        return self.due_date.astimezone(UTC).isoformat().replace("+00:00", "Z")


@dataclass(slots=True)
class StoreProject:
    """A store's workspace, discovered from its "Store <id>" title."""

    project_id: str
    store_id: str


@dataclass(slots=True)
class ProjectOutcome:
    """Result of running the task workflow against one project."""

    project_id: str
    store_id: str
    tasks_created: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class FanOutSummary:
    """Aggregate of per-project outcomes for one fan-out run."""

    rows: int
    outcomes: list[ProjectOutcome] = field(default_factory=list)

    @property
    def matched_projects(self) -> int:
        return len(self.outcomes)

    @property
    def intended_tasks(self) -> int:
        return self.rows * self.matched_projects

    @property
    def tasks_created(self) -> int:
        return sum(outcome.tasks_created for outcome in self.outcomes)

    @property
    def failed(self) -> list[ProjectOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]


@dataclass(slots=True)
class DistributionResult:
    """What a successful create returns to the caller."""

    distribution_id: str
    post_id: str | None
    task_count: int = 0
    profile_import_id: str | None = None
