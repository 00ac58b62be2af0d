"""
Directory index builder.
Scans the full platform user directory once per request and builds an
in-memory store identifier -> account lookup table.
"""

import asyncio
import time

from storecast.infrastructure.observability.logging import get_logger
from storecast.models.domain.directory_domain import DirectoryAccount
from storecast.services.staffbase.client import StaffbaseClient, StaffbaseError

logger = get_logger(__name__)

USERS_PATH = "/users"


class DirectoryIndexBuilder:
    """
    Builds the store identifier lookup table from the user directory.

    The scan never raises: if a page fails the builder logs and returns what
    it has accumulated, so callers must treat the index as best-effort.
    """

    def __init__(
        self,
        client: StaffbaseClient,
        attribute_key: str,
        page_size: int = 100,
        pause_every_rows: int = 1000,
        pause_seconds: float = 0.5,
    ):
        self.client = client
        self.attribute_key = attribute_key
        self.page_size = page_size
        self.pause_every_rows = pause_every_rows
        self.pause_seconds = pause_seconds

    async def build_index(self) -> dict[str, DirectoryAccount]:
        """
        Paginate the directory and key every account by its store identifier.

        Returns:
            dict: store_id -> DirectoryAccount (last write wins on duplicates)
        """
        start_time = time.time()
        index: dict[str, DirectoryAccount] = {}
        rows_seen = 0
        rows_since_pause = 0
        duplicates = 0
        complete = True

        try:
            async for page in self.client.iter_pages(USERS_PATH, self.page_size):
                for user in page:
                    account = DirectoryAccount.from_user(user, self.attribute_key)
                    if account is None:
                        continue
                    if account.store_id in index:
                        duplicates += 1
                    index[account.store_id] = account

                rows_seen += len(page)
                rows_since_pause += len(page)
                if self.pause_every_rows and rows_since_pause >= self.pause_every_rows:
                    rows_since_pause = 0
                    await asyncio.sleep(self.pause_seconds)

        except StaffbaseError as e:
            complete = False
            logger.warning(
                "Directory scan aborted, returning partial index",
                rows_seen=rows_seen,
                accounts_indexed=len(index),
                status_code=e.status_code,
                error=str(e),
            )
        except Exception as e:
            complete = False
            logger.error(
                "Unexpected error during directory scan",
                rows_seen=rows_seen,
                accounts_indexed=len(index),
                error=str(e),
            )

        logger.info(
            "Directory index built",
            rows_seen=rows_seen,
            accounts_indexed=len(index),
            duplicate_store_ids=duplicates,
            complete=complete,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return index
