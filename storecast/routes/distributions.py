"""
Distribution API Routes
Operator endpoints for verifying stores, creating, listing and deleting
announcements. Errors use the ``{"error": ...}`` body the console expects.
"""

import json

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError

from storecast.config import settings
from storecast.dependencies import get_catalog, get_index_builder, get_orchestrator
from storecast.infrastructure.observability.logging import get_logger
from storecast.models.api.distribution_request import VerifiedAccountRequest, VerifyUsersRequest
from storecast.models.api.distribution_response import (
    CreateDistributionResponse,
    DeleteDistributionResponse,
    DirectoryAccountResponse,
    DistributionItemResponse,
    DistributionListResponse,
    VerifyUsersResponse,
)
from storecast.models.domain.directory_domain import DirectoryAccount
from storecast.services.directory.index_builder import DirectoryIndexBuilder
from storecast.services.directory.resolver import normalize_store_ids, resolve
from storecast.services.distribution.catalog import SubmissionCatalogReader
from storecast.services.distribution.orchestrator import (
    DistributionOrchestrator,
    DistributionValidationError,
)
from storecast.services.staffbase.client import StaffbaseError
from storecast.utils.csv_rows import parse_task_rows

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["distributions"])

_verified_accounts = TypeAdapter(list[VerifiedAccountRequest])


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _upstream_status(error: StaffbaseError) -> int:
    if error.status_code == status.HTTP_404_NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_502_BAD_GATEWAY


@router.post("/verify-users", response_model=VerifyUsersResponse)
async def verify_users(
    payload: VerifyUsersRequest,
    index_builder: DirectoryIndexBuilder = Depends(get_index_builder),
):
    """Resolve pasted store identifiers to directory accounts."""
    requested = normalize_store_ids(payload.store_ids)
    if not requested:
        return error_response("Invalid storeIds", status.HTTP_400_BAD_REQUEST)

    try:
        index = await index_builder.build_index()
        result = resolve(requested, index)
    except Exception as e:
        logger.error("Error verifying store ids", requested_count=len(requested), error=str(e))
        return error_response(str(e), status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(
        "Store ids verified",
        requested_count=len(requested),
        found=len(result.resolved),
        not_found=len(result.unresolved),
    )
    return VerifyUsersResponse(
        found_users=[
            DirectoryAccountResponse(
                account_id=account.account_id,
                store_id=account.store_id,
                display_name=account.display_name,
            )
            for account in result.resolved
        ],
        not_found_ids=result.unresolved,
        requested_count=len(requested),
        confirmation_threshold=settings.LARGE_BATCH_CONFIRM_THRESHOLD,
    )


def _parse_json_list(raw: str, field: str) -> list:
    try:
        value = json.loads(raw)
    except ValueError as e:
        raise DistributionValidationError(f"Invalid {field}") from e
    if not isinstance(value, list):
        raise DistributionValidationError(f"Invalid {field}")
    return value


async def _target_accounts(
    verified_users: str | None, store_ids: str | None, index_builder: DirectoryIndexBuilder
) -> list[DirectoryAccount]:
    """Pre-verified accounts when supplied, otherwise re-resolve the raw ids."""
    if verified_users:
        try:
            verified = _verified_accounts.validate_python(_parse_json_list(verified_users, "verifiedUsers"))
        except ValidationError as e:
            raise DistributionValidationError("Invalid verifiedUsers") from e
        if verified:
            return [
                DirectoryAccount(
                    account_id=str(account.account_id),
                    store_id=str(account.store_id),
                    display_name=account.display_name,
                )
                for account in verified
            ]

    if not store_ids:
        return []

    requested = normalize_store_ids(_parse_json_list(store_ids, "storeIds"))
    if not requested:
        return []
    index = await index_builder.build_index()
    result = resolve(requested, index)
    if result.unresolved:
        logger.info("Some store ids could not be resolved", not_found=len(result.unresolved))
    return result.resolved


@router.post("/create", response_model=CreateDistributionResponse)
async def create_distribution(
    title: str = Form(default=""),
    department: str | None = Form(default=None),
    verified_users: str | None = Form(default=None, alias="verifiedUsers"),
    store_ids: str | None = Form(default=None, alias="storeIds"),
    task_csv: UploadFile | None = File(default=None, alias="taskCsv"),
    profile_csv: UploadFile | None = File(default=None, alias="profileCsv"),
    index_builder: DirectoryIndexBuilder = Depends(get_index_builder),
    orchestrator: DistributionOrchestrator = Depends(get_orchestrator),
):
    """Create channel + post for the targeted stores and fan out tasks."""
    try:
        accounts = await _target_accounts(verified_users, store_ids, index_builder)

        tasks = []
        if task_csv is not None:
            tasks = parse_task_rows(await task_csv.read())

        profile_bytes = None
        profile_filename = None
        if profile_csv is not None:
            profile_bytes = await profile_csv.read()
            profile_filename = profile_csv.filename

        result = await orchestrator.create(
            accounts,
            title=title,
            department=department,
            tasks=tasks,
            profile_csv=profile_bytes,
            profile_filename=profile_filename,
        )

    except DistributionValidationError as e:
        logger.info("Rejected create request", error=str(e))
        return error_response(str(e), status.HTTP_400_BAD_REQUEST)
    except StaffbaseError as e:
        logger.error("Platform error creating distribution", status_code=e.status_code, error=str(e))
        return error_response(str(e), status.HTTP_502_BAD_GATEWAY)
    except Exception as e:
        logger.error("Error creating distribution", error=str(e))
        return error_response(str(e), status.HTTP_500_INTERNAL_SERVER_ERROR)

    return CreateDistributionResponse(
        channel_id=result.distribution_id,
        post_id=result.post_id,
        task_count=result.task_count,
        profile_import_id=result.profile_import_id,
    )


@router.get("/items", response_model=DistributionListResponse)
async def list_distributions(
    response: Response,
    catalog: SubmissionCatalogReader = Depends(get_catalog),
):
    """List announcements created by this console, newest first."""
    response.headers["Cache-Control"] = "no-store, no-cache"

    try:
        distributions = await catalog.list_distributions()
    except Exception as e:
        logger.error("Listing failed, returning degraded empty list", error=str(e))
        return DistributionListResponse(items=[], degraded=True)

    return DistributionListResponse(
        items=[
            DistributionItemResponse(
                channel_id=d.distribution_id,
                title=d.title,
                status=d.lifecycle_status.value,
                department=d.department,
                created_at=d.created_at,
                user_count=d.target_count,
            )
            for d in distributions
        ]
    )


@router.delete("/delete/{distribution_id}", response_model=DeleteDistributionResponse)
async def delete_distribution(
    distribution_id: str,
    catalog: SubmissionCatalogReader = Depends(get_catalog),
):
    """Delete an announcement channel (posts are removed with it)."""
    try:
        await catalog.delete_distribution(distribution_id)
    except StaffbaseError as e:
        logger.error("Error deleting distribution", distribution_id=distribution_id, error=str(e))
        return error_response(str(e), _upstream_status(e))

    return DeleteDistributionResponse()
