"""
Distribution orchestrator.
Creates the access-restricted channel, publishes its post and triggers the
task fan-out for one announcement.
"""

import time
from collections.abc import Callable

from storecast.infrastructure.observability.logging import get_logger
from storecast.models.domain.directory_domain import DirectoryAccount
from storecast.models.domain.distribution_domain import DistributionResult, TaskSpecification
from storecast.services.distribution import metadata
from storecast.services.distribution.content import render_post_body
from storecast.services.distribution.fanout import TaskFanOutEngine
from storecast.services.distribution.profile_import import ProfileImportService
from storecast.services.staffbase.client import StaffbaseClient

logger = get_logger(__name__)

NEWS_PLUGIN_ID = "news"
CONTENT_LOCALES = ("en_US", "de_DE")


class DistributionValidationError(ValueError):
    """Request cannot be executed as given (no targets, missing title)."""


def normalize_department(department: str | None, default: str = metadata.DEFAULT_DEPARTMENT) -> str:
    if department is None:
        return default
    department = department.strip()
    if not department or department == "undefined":
        return default
    return department


def _now_ms() -> int:
    return int(time.time() * 1000)


class DistributionOrchestrator:
    """
    Runs the create workflow. Each step is one round trip to the platform;
    channel and post failures abort the request, task fan-out failures do not.
    """

    def __init__(
        self,
        client: StaffbaseClient,
        space_id: str,
        fanout: TaskFanOutEngine,
        profile_import: ProfileImportService | None = None,
        news_plugin_id: str = NEWS_PLUGIN_ID,
        locales: tuple[str, ...] | list[str] = CONTENT_LOCALES,
        default_department: str = metadata.DEFAULT_DEPARTMENT,
        clock: Callable[[], int] = _now_ms,
    ):
        self.client = client
        self.space_id = space_id
        self.fanout = fanout
        self.profile_import = profile_import or ProfileImportService(client)
        self.news_plugin_id = news_plugin_id
        self.locales = list(locales)
        self.default_department = default_department
        self.clock = clock

    async def create(
        self,
        accounts: list[DirectoryAccount],
        title: str,
        department: str | None = None,
        tasks: list[TaskSpecification] | None = None,
        profile_csv: bytes | None = None,
        profile_filename: str | None = None,
    ) -> DistributionResult:
        """
        Create channel + post for the resolved accounts and fan out tasks.

        Raises:
            DistributionValidationError: If there are no targets or no title
            StaffbaseError: If the profile import, channel or post call fails
        """
        if not accounts:
            raise DistributionValidationError("No valid targets")
        title = (title or "").strip()
        if not title:
            raise DistributionValidationError("Title is required")

        department = normalize_department(department, self.default_department)
        tasks = tasks or []
        account_ids = list(dict.fromkeys(account.account_id for account in accounts))

        field_merge_table = ""
        profile_import_id = None
        if profile_csv:
            imported = await self.profile_import.run_import(profile_csv, profile_filename or "profiles.csv")
            if imported is not None:
                field_merge_table = imported.field_merge_table
                profile_import_id = imported.import_id

        channel = await self._create_channel(title, account_ids)
        channel_id = str(channel.get("id"))

        post = await self._create_post(channel_id, title, department, len(account_ids), tasks, field_merge_table)
        post_id = post.get("id")

        task_count = 0
        if tasks:
            task_count = await self._fan_out_tasks(accounts, tasks, title, channel_id)

        logger.info(
            "Distribution created",
            channel_id=channel_id,
            post_id=post_id,
            department=department,
            target_count=len(account_ids),
            task_count=task_count,
        )
        return DistributionResult(
            distribution_id=channel_id,
            post_id=str(post_id) if post_id is not None else None,
            task_count=task_count,
            profile_import_id=str(profile_import_id) if profile_import_id is not None else None,
        )

    async def _create_channel(self, title: str, account_ids: list[str]) -> dict:
        external_id = metadata.encode(self.clock())
        logger.info("Creating channel", external_id=external_id, accessor_count=len(account_ids))
        return await self.client.request(
            "POST",
            f"/spaces/{self.space_id}/installations",
            json={
                "pluginID": self.news_plugin_id,
                "externalID": external_id,
                "config": {"localization": {locale: {"title": title} for locale in self.locales}},
                "accessorIDs": account_ids,
            },
        )

    async def _create_post(
        self,
        channel_id: str,
        title: str,
        department: str,
        target_count: int,
        tasks: list[TaskSpecification],
        field_merge_table: str,
    ) -> dict:
        primary_locale = self.locales[0]
        return await self.client.request(
            "POST",
            f"/channels/{channel_id}/posts",
            json={
                "contents": {
                    primary_locale: {
                        "title": title,
                        "content": render_post_body(tasks, field_merge_table),
                        "teaser": metadata.build_teaser(department, target_count),
                        "kicker": department,
                    }
                }
            },
        )

    async def _fan_out_tasks(
        self, accounts: list[DirectoryAccount], tasks: list[TaskSpecification], title: str, channel_id: str
    ) -> int:
        store_ids = list(dict.fromkeys(account.store_id for account in accounts))
        try:
            summary = await self.fanout.fan_out(store_ids, tasks, list_name=title)
        except Exception as e:
            logger.error("Task fan-out aborted", channel_id=channel_id, error=str(e))
            return 0
        return summary.tasks_created
