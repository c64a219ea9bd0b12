"""
Partner Mode Models

PartnerLink is the singleton per installation describing who (if anyone)
this user is linked with. The remaining models are the explicit outcomes
of the share / link handshake and of email validation, so failures reach
the caller as values instead of exceptions.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PartnerLink(BaseModel):
    """
    Persisted partner link settings.

    ``partner_file_handle`` is a cache of the partner's shared document;
    it is dropped whenever the link is disabled and can always be
    re-derived by discovery.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = False
    partner_email: str = Field(default="", alias="partnerEmail")
    partner_file_handle: Optional[str] = Field(default=None, alias="partnerFileId")
    enabled_at: Optional[datetime] = Field(default=None, alias="enabledAt")

    @property
    def is_active(self) -> bool:
        return self.enabled and bool(self.partner_email)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ShareResult(BaseModel):
    """Outcome of the sharing side of the handshake."""

    success: bool
    file_handle: Optional[str] = None
    error: Optional[str] = None


class LinkResult(BaseModel):
    """Outcome of the linking side of the handshake."""

    success: bool
    file_handle: Optional[str] = None
    exact_owner_match: bool = Field(
        default=False,
        description="False when discovery fell back to the first shared file"
    )
    error: Optional[str] = None


class EmailValidationResult(BaseModel):
    """Partner email check, run before any I/O."""

    is_valid: bool
    normalized_email: str = ""
    message: Optional[str] = Field(
        default=None,
        description="User-facing reason when invalid"
    )
