"""
Profile CSV import.
Pushes per-store profile attributes into the user directory and renders the
merge-field reference shown in the announcement body.
"""

import re
from dataclasses import dataclass

from storecast.infrastructure.observability.logging import get_logger
from storecast.services.distribution.content import render_field_merge_table
from storecast.services.staffbase.client import StaffbaseClient
from storecast.utils.csv_rows import parse_csv

logger = get_logger(__name__)

IMPORTS_PATH = "/users/imports"
IMPORT_PENDING = "IMPORT_PENDING"

_ID_COLUMN_PATTERN = re.compile(r"store\s*id|external\s*id|id", re.IGNORECASE)


@dataclass(slots=True)
class ProfileImportResult:
    import_id: str | None
    mapping: dict[str, str]
    field_merge_table: str


def pick_id_column(headers: list[str]) -> str:
    return next((h for h in headers if _ID_COLUMN_PATTERN.search(h)), headers[0])


def build_mapping(headers: list[str], id_column: str) -> dict[str, str]:
    mapping = {"externalId": id_column}
    for header in headers:
        if header != id_column:
            mapping[f"profile-field:{header}"] = header
    return mapping


class ProfileImportService:
    """Uploads a profile CSV as a delta import and starts it."""

    def __init__(self, client: StaffbaseClient):
        self.client = client

    async def run_import(self, content: bytes, filename: str) -> ProfileImportResult | None:
        """
        Upload, configure and start a directory import.

        Returns:
            ProfileImportResult, or None when the file has no header row

        Raises:
            StaffbaseError: If any import step fails
        """
        parsed = parse_csv(content)
        if not parsed.headers:
            logger.info("Profile CSV has no headers, skipping import", filename=filename)
            return None

        id_column = pick_id_column(parsed.headers)
        mapping = build_mapping(parsed.headers, id_column)

        logger.info("Triggering profile import", filename=filename, id_column=id_column, mapping=mapping)

        upload = await self.client.upload(IMPORTS_PATH, content, filename or "profiles.csv")
        import_id = upload.get("id")

        await self.client.request(
            "PATCH",
            f"{IMPORTS_PATH}/{import_id}/config",
            json={"delta": True, "separator": parsed.separator, "mapping": mapping},
        )
        await self.client.request("PATCH", f"{IMPORTS_PATH}/{import_id}", json={"state": IMPORT_PENDING})

        logger.info("Profile import started", import_id=import_id, rows=len(parsed.rows))

        table = ""
        if parsed.rows:
            table = render_field_merge_table(parsed.headers, id_column, parsed.rows[0])

        return ProfileImportResult(import_id=import_id, mapping=mapping, field_merge_table=table)
