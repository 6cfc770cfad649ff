"""Pydantic projections of the Microsoft Graph resources this client reads (subset we need)."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Graph user, projected to $select=displayName,mail,userPrincipalName."""

    displayName: Optional[str] = None
    mail: Optional[str] = None
    userPrincipalName: Optional[str] = None

    model_config = {"extra": "forbid"}

    @property
    def mail_or_upn(self) -> str | None:
        """Work/school accounts carry mail; personal accounts often only a UPN."""
        return self.mail or self.userPrincipalName


class EmailAddress(BaseModel):
    """Graph emailAddress."""

    address: Optional[str] = None
    name: Optional[str] = None


class Recipient(BaseModel):
    """Graph recipient (from, toRecipients, etc.)."""

    emailAddress: EmailAddress


class InboxMessage(BaseModel):
    """Graph message, projected to $select=from,isRead,receivedDateTime,subject."""

    from_: Optional[Recipient] = Field(None, alias="from")
    isRead: bool = False
    receivedDateTime: Optional[datetime] = None
    subject: str = ""

    model_config = {"populate_by_name": True, "extra": "forbid"}

    @property
    def sender_name(self) -> str:
        if self.from_ and self.from_.emailAddress:
            return self.from_.emailAddress.name or self.from_.emailAddress.address or "NONE"
        return "NONE"


class DriveItemSummary(BaseModel):
    """OneDrive driveItem (subset)."""

    id: str
    name: str = ""
    size: Optional[int] = None
    isFolder: bool = False


class UploadSessionInfo(BaseModel):
    """Graph uploadSession: a pre-authenticated URL accepting byte ranges."""

    uploadUrl: str
    expirationDateTime: Optional[datetime] = None
    nextExpectedRanges: list[str] = []


class SliceResponse(BaseModel):
    """Outcome of one slice PUT: either more ranges are expected or the item is complete."""

    nextExpectedRanges: list[str] = []
    item: Optional[DriveItemSummary] = None

    @property
    def completed(self) -> bool:
        return self.item is not None


class UploadResult(BaseModel):
    """Verdict of a chunked upload."""

    succeeded: bool
    item_id: Optional[str] = None
    bytes_sent: int = 0
    total_bytes: int = 0
    error: Optional[str] = None


class SharingLink(BaseModel):
    """Graph sharingLink (from the permission returned by createLink)."""

    webUrl: str
    type: Optional[str] = None
    scope: Optional[str] = None
