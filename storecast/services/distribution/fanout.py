"""
Task fan-out engine.
Replicates a task list into every store project that matches the targeted
store identifiers, a fixed number of projects at a time.
"""

import asyncio
import re
import time
from collections.abc import Iterable

from storecast.infrastructure.observability.logging import get_logger
from storecast.models.domain.distribution_domain import (
    FanOutSummary,
    ProjectOutcome,
    StoreProject,
    TaskSpecification,
)
from storecast.services.staffbase.client import StaffbaseClient

logger = get_logger(__name__)

BATCH_SIZE = 5
TASK_STATUS_OPEN = "OPEN"

STORE_TITLE_PATTERN = re.compile(
    r"^\s*#?\s*store(?:\s*[#:\-]\s*|\s+)(?P<store_id>[^\s#]+)\s*$", re.IGNORECASE
)


def installation_title(installation: dict, locale: str = "en_US") -> str:
    """Localized title of an installation, falling back to any locale present."""
    localization = (installation.get("config") or {}).get("localization") or {}
    title = (localization.get(locale) or {}).get("title")
    if title:
        return title
    for values in localization.values():
        if isinstance(values, dict) and values.get("title"):
            return values["title"]
    return ""


def extract_store_id(title: str) -> str | None:
    """Store identifier from a "Store <id>" project title."""
    match = STORE_TITLE_PATTERN.match(title or "")
    return match.group("store_id") if match else None


class TaskFanOutEngine:
    """
    Creates one task list plus one task per row in each matching store project.

    Projects run in batches; the projects of one batch run concurrently and
    the next batch starts only once every project of the current batch has
    settled. A failing project is logged and recorded, never raised.
    """

    def __init__(
        self,
        client: StaffbaseClient,
        space_id: str,
        page_size: int = 100,
        batch_size: int = BATCH_SIZE,
        news_plugin_id: str = "news",
    ):
        self.client = client
        self.space_id = space_id
        self.page_size = page_size
        self.batch_size = batch_size
        self.news_plugin_id = news_plugin_id

    async def discover_projects(self, store_ids: Iterable[str]) -> dict[str, StoreProject]:
        """
        Scan every installation in the space and keep the store projects whose
        identifier was requested.

        Returns:
            dict: store_id -> StoreProject
        """
        wanted = {str(store_id) for store_id in store_ids}
        projects: dict[str, StoreProject] = {}
        scanned = 0

        async for page in self.client.iter_pages(
            f"/spaces/{self.space_id}/installations", self.page_size
        ):
            for installation in page:
                scanned += 1
                if installation.get("pluginID") == self.news_plugin_id:
                    continue
                store_id = extract_store_id(installation_title(installation))
                if store_id and store_id in wanted:
                    projects[store_id] = StoreProject(
                        project_id=str(installation.get("id")), store_id=store_id
                    )

        logger.info(
            "Store projects discovered",
            installations_scanned=scanned,
            requested_stores=len(wanted),
            matched_projects=len(projects),
        )
        return projects

    async def fan_out(
        self, store_ids: Iterable[str], tasks: list[TaskSpecification], list_name: str
    ) -> FanOutSummary:
        """
        Run the task workflow against every matching project.

        Args:
            store_ids: Store identifiers (not account ids) to target
            tasks: Parsed task rows
            list_name: Name of the task list created in each project

        Returns:
            FanOutSummary: Per-project outcomes
        """
        summary = FanOutSummary(rows=len(tasks))
        if not tasks:
            return summary

        start_time = time.time()
        projects = list((await self.discover_projects(store_ids)).values())
        batches = [projects[i : i + self.batch_size] for i in range(0, len(projects), self.batch_size)]

        logger.info(
            "Starting task fan-out",
            projects=len(projects),
            rows=len(tasks),
            batch_count=len(batches),
            batch_size=self.batch_size,
        )

        for batch_num, batch in enumerate(batches, 1):
            logger.debug("Processing fan-out batch", batch_number=batch_num, batch_size=len(batch))
            outcomes = await asyncio.gather(
                *(self._run_project(project, tasks, list_name) for project in batch)
            )
            summary.outcomes.extend(outcomes)

        for outcome in summary.failed:
            logger.warning(
                "Task fan-out failed for project",
                project_id=outcome.project_id,
                store_id=outcome.store_id,
                tasks_created=outcome.tasks_created,
                error=outcome.error,
            )

        logger.info(
            "Task fan-out completed",
            matched_projects=summary.matched_projects,
            failed_projects=len(summary.failed),
            intended_tasks=summary.intended_tasks,
            tasks_created=summary.tasks_created,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return summary

    async def _run_project(
        self, project: StoreProject, tasks: list[TaskSpecification], list_name: str
    ) -> ProjectOutcome:
        """Create the list and its tasks in one project, capturing any failure."""
        outcome = ProjectOutcome(project_id=project.project_id, store_id=project.store_id)
        try:
            task_list = await self.client.request(
                "POST", f"/tasks/{project.project_id}/lists", json={"name": list_name}
            )
            task_list_id = task_list.get("id")

            for task in tasks:
                await self.client.request(
                    "POST",
                    f"/tasks/{project.project_id}/task",
                    json={
                        "taskListId": task_list_id,
                        "title": task.title,
                        "description": task.description,
                        "dueDate": task.due_date_iso(),
                        "status": TASK_STATUS_OPEN,
                        "assigneeIds": [],
                    },
                )
                outcome.tasks_created += 1

        except Exception as e:
            outcome.error = str(e)
        return outcome
