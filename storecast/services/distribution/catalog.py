"""
Submission catalog.
Lists the announcements this system created by re-scanning every channel in
the space and decoding the metadata embedded in each one.
"""

import time
from datetime import UTC, datetime

from storecast.infrastructure.observability.logging import get_logger
from storecast.models.domain.distribution_domain import Distribution, LifecycleStatus
from storecast.services.distribution import metadata
from storecast.services.distribution.fanout import installation_title
from storecast.services.staffbase.client import StaffbaseClient

logger = get_logger(__name__)

UNTITLED = "Untitled"


def _parse_timestamp(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, (int, float)):
        return _from_ms(int(value))
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _to_ms(value: datetime | None) -> int | None:
    return int(value.timestamp() * 1000) if value else None


def _from_ms(value: int | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


class SubmissionCatalogReader:
    """
    Read-only view over the distributions in a space.

    Cost is one call per page of installations plus one post lookup per
    recognized distribution; the platform offers no server-side filter.
    """

    def __init__(
        self,
        client: StaffbaseClient,
        space_id: str,
        page_size: int = 100,
        news_plugin_id: str = "news",
        locale: str = "en_US",
    ):
        self.client = client
        self.space_id = space_id
        self.page_size = page_size
        self.news_plugin_id = news_plugin_id
        self.locale = locale

    async def list_distributions(self) -> list[Distribution]:
        """
        Return recognized distributions, newest first.

        Raises:
            StaffbaseError: If the installation scan itself fails
        """
        start_time = time.time()
        distributions: list[Distribution] = []
        scanned = 0

        async for page in self.client.iter_pages(
            f"/spaces/{self.space_id}/installations", self.page_size
        ):
            for installation in page:
                scanned += 1
                if installation.get("pluginID") != self.news_plugin_id:
                    continue
                try:
                    distribution = await self._hydrate(installation)
                except Exception as e:
                    logger.warning(
                        "Skipping undecodable channel",
                        channel_id=str(installation.get("id")),
                        error=str(e),
                    )
                    continue
                if distribution is not None:
                    distributions.append(distribution)

        distributions.sort(key=lambda d: d.created_at, reverse=True)

        logger.info(
            "Distributions listed",
            installations_scanned=scanned,
            distributions=len(distributions),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return distributions

    async def _hydrate(self, installation: dict) -> Distribution | None:
        """Decode one channel; None when it was not created by this system."""
        channel_id = str(installation.get("id"))
        external_id = installation.get("externalID")
        external_id = "" if external_id is None else str(external_id)
        title = installation_title(installation, self.locale) or UNTITLED

        if metadata.detect_generation(external_id, title) is None:
            return None

        accessor_ids = [str(a) for a in installation.get("accessorIDs") or []]
        installed_at = _parse_timestamp(installation.get("createdAt") or installation.get("created"))
        source = metadata.MetadataSource(
            external_id=external_id,
            title=title,
            fallback_created_at_ms=_to_ms(installed_at),
            fallback_accessor_count=len(accessor_ids),
        )

        status = LifecycleStatus.DRAFT
        decoded = metadata.decode_source(source)
        try:
            post = await self._latest_post(channel_id)
        except Exception as e:
            logger.warning("Failed to load latest post", channel_id=channel_id, error=str(e))
            post = None

        if post is not None:
            status = LifecycleStatus.from_post(post)
            contents = (post.get("contents") or {}).get(self.locale) or {}
            source.teaser = contents.get("teaser") or ""
            source.kicker = contents.get("kicker") or ""
            source.body_html = contents.get("content") or ""
            decoded = metadata.decode_source(source)

        created_at = _from_ms(decoded.created_at_ms)

        return Distribution(
            distribution_id=channel_id,
            title=decoded.display_title or title,
            department=decoded.department,
            target_count=decoded.target_count,
            created_at=created_at or installed_at or datetime.now(UTC),
            lifecycle_status=status,
            accessor_account_ids=accessor_ids,
        )

    async def _latest_post(self, channel_id: str) -> dict | None:
        result = await self.client.request("GET", f"/channels/{channel_id}/posts", params={"limit": 1})
        posts = result.get("data") or []
        return posts[0] if posts else None

    async def delete_distribution(self, distribution_id: str) -> None:
        """Delete the channel; the platform cascades to its posts."""
        logger.info("Deleting distribution", distribution_id=distribution_id)
        await self.client.request("DELETE", f"/installations/{distribution_id}")
