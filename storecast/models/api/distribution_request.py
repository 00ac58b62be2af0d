# storecast/models/api/distribution_request.py
"""
Distribution API request models.
Used by routes for input validation. Wire names are camelCase.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class VerifyUsersRequest(BaseModel):
    """Request for resolving store identifiers against the directory."""

    model_config = ConfigDict(populate_by_name=True)

    store_ids: list[str | int] = Field(
        ..., alias="storeIds", description="Store identifiers; entries may hold comma/space separated lists"
    )


class VerifiedAccountRequest(BaseModel):
    """A directory account the operator already verified."""

    account_id: str | int = Field(
        ..., validation_alias=AliasChoices("accountId", "id", "account_id"), description="Platform user id"
    )
    store_id: str | int = Field(
        ..., validation_alias=AliasChoices("storeId", "csvId", "store_id"), description="Store identifier"
    )
    display_name: str = Field(
        default="", validation_alias=AliasChoices("displayName", "name", "display_name"), description="User name"
    )
