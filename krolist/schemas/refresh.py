"""Refresh quota gate and tagged edge-function results."""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class RefreshGate(BaseModel):
    """Advisory view of whether an automatic refresh is allowed this week."""

    allowed: bool
    next_eligible_date: Optional[datetime] = None
    remaining: int = Field(ge=0)


class RefreshOk(BaseModel):
    """Refresh-all function ran and updated the user's products."""

    kind: Literal["ok"] = "ok"
    updated: int = 0
    checked: int = 0
    message: Optional[str] = None
    remaining_refreshes: Optional[int] = None
    next_refresh_date: Optional[datetime] = None


class QuotaDenied(BaseModel):
    """Server refused the refresh because the weekly quota is used up."""

    kind: Literal["quota_denied"] = "quota_denied"
    message: str
    next_refresh_date: Optional[datetime] = None


class RefreshFailed(BaseModel):
    """Function answered with an error that is not a quota denial."""

    kind: Literal["error"] = "error"
    message: str


class CatalogRefreshOk(BaseModel):
    """Admin catalog refresh finished."""

    kind: Literal["catalog_ok"] = "catalog_ok"
    updated: int = 0
    failed: int = 0


RefreshResult = Annotated[
    Union[RefreshOk, QuotaDenied, RefreshFailed],
    Field(discriminator="kind"),
]

CatalogRefreshResult = Annotated[
    Union[CatalogRefreshOk, RefreshFailed],
    Field(discriminator="kind"),
]
