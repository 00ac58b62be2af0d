# storecast/models/api/distribution_response.py
"""
Distribution API response models.
Used by routes for output formatting. Wire names are camelCase.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DirectoryAccountResponse(CamelModel):
    """Response model for a resolved directory account."""

    account_id: str = Field(..., description="Platform user id")
    store_id: str = Field(..., description="Store identifier")
    display_name: str = Field(default="", description="First and last name")


class VerifyUsersResponse(CamelModel):
    """Response for store identifier verification."""

    found_users: list[DirectoryAccountResponse] = Field(..., description="Resolved accounts in input order")
    not_found_ids: list[str] = Field(..., description="Identifiers with no matching account")
    requested_count: int = Field(..., description="Distinct identifiers after normalization")
    confirmation_threshold: int = Field(..., description="Batch size above which a UI should confirm")


class CreateDistributionResponse(CamelModel):
    """Response for a created announcement."""

    success: bool = Field(default=True)
    channel_id: str = Field(..., description="Created channel id")
    post_id: str | None = Field(None, description="Created post id")
    task_count: int = Field(default=0, description="Tasks created across store projects")
    profile_import_id: str | None = Field(None, description="Directory import started from profileCsv")


class DistributionItemResponse(CamelModel):
    """One listed announcement."""

    channel_id: str = Field(..., description="Channel id")
    title: str = Field(..., description="Announcement title")
    status: str = Field(..., description="Draft, Scheduled or Published")
    department: str = Field(..., description="Department or Uncategorized")
    created_at: datetime = Field(..., description="Creation time")
    user_count: int = Field(..., description="Number of targeted stores")


class DistributionListResponse(CamelModel):
    """Response for the announcement listing."""

    items: list[DistributionItemResponse] = Field(default_factory=list)
    degraded: bool = Field(default=False, description="True when the listing failed and is empty")


class DeleteDistributionResponse(CamelModel):
    success: bool = Field(default=True)


class ErrorResponse(BaseModel):
    error: str
