import pytest

from storecast.services.distribution.profile_import import (
    ProfileImportService,
    build_mapping,
    pick_id_column,
)
from storecast.services.staffbase.client import StaffbaseAPIError


def test_pick_id_column_prefers_store_id():
    assert pick_id_column(["Manager", "Store ID", "Region"]) == "Store ID"
    assert pick_id_column(["externalId", "Manager"]) == "externalId"
    assert pick_id_column(["Manager", "Region"]) == "Manager"


def test_build_mapping():
    assert build_mapping(["Store ID", "Manager", "Region"], "Store ID") == {
        "externalId": "Store ID",
        "profile-field:Manager": "Manager",
        "profile-field:Region": "Region",
    }


@pytest.mark.asyncio
async def test_run_import_configures_and_starts(fake_staffbase):
    fake_staffbase.on("UPLOAD", "/users/imports", {"id": "imp-9"})
    fake_staffbase.on("PATCH", "/users/imports/imp-9/config", {})
    fake_staffbase.on("PATCH", "/users/imports/imp-9", {})

    result = await ProfileImportService(fake_staffbase).run_import(b"id,Region\n100,North\n", "stores.csv")

    assert result.import_id == "imp-9"
    config_payload = fake_staffbase.calls_to("PATCH", "/users/imports/imp-9/config")[0][2]
    assert config_payload == {
        "delta": True,
        "separator": ",",
        "mapping": {"externalId": "id", "profile-field:Region": "Region"},
    }
    assert fake_staffbase.calls_to("PATCH", "/users/imports/imp-9")[0][2] == {"state": "IMPORT_PENDING"}
    assert "North" in result.field_merge_table


@pytest.mark.asyncio
async def test_run_import_skips_empty_file(fake_staffbase):
    assert await ProfileImportService(fake_staffbase).run_import(b"", "empty.csv") is None
    assert fake_staffbase.calls == []


@pytest.mark.asyncio
async def test_run_import_propagates_upload_failure(fake_staffbase):
    fake_staffbase.on("UPLOAD", "/users/imports", StaffbaseAPIError("Upload Failed 400: bad", status_code=400))

    with pytest.raises(StaffbaseAPIError):
        await ProfileImportService(fake_staffbase).run_import(b"id;x\n1;2\n", "p.csv")
