"""Remote provider protocol (the Graph calls the menu operations need)."""

from typing import Protocol

from graph_tutorial.remote.graph_models import (
    DriveItemSummary,
    InboxMessage,
    SharingLink,
    SliceResponse,
    UploadSessionInfo,
    UserProfile,
)


class GraphRemote(Protocol):
    """Typed Graph operations for the signed-in user (/me). Drive paths are relative to the drive root.

    Failures raise RemoteOperationFailure.
    """

    async def get_me(self) -> UserProfile:
        ...

    async def list_inbox(self, top: int = 25) -> list[InboxMessage]:
        """Inbox messages, newest first."""
        ...

    async def send_mail(self, subject: str, body: str, recipient: str) -> None:
        ...

    async def list_root_children(self) -> list[DriveItemSummary]:
        ...

    async def upload_content(self, path: str, content: bytes) -> DriveItemSummary:
        """Single-request upload (small files only)."""
        ...

    async def delete_item(self, path: str) -> None:
        ...

    async def download_content(self, path: str) -> bytes:
        ...

    async def create_upload_session(self, path: str, conflict_behavior: str = "replace") -> UploadSessionInfo:
        ...

    async def upload_slice(self, session: UploadSessionInfo, data: bytes, start: int, total: int) -> SliceResponse:
        """PUT bytes [start, start + len(data)) of a total-byte upload."""
        ...

    async def cancel_upload_session(self, session: UploadSessionInfo) -> None:
        ...

    async def create_link(self, path: str, link_type: str, scope: str, password: str | None = None) -> SharingLink:
        ...
