"""Mock Graph provider: profile in memory, inbox from inbox.json, sent mail to sent_items.json, drive in a folder."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from urllib.parse import quote

from graph_tutorial.errors import RemoteOperationFailure
from graph_tutorial.remote.graph_models import (
    DriveItemSummary,
    InboxMessage,
    SharingLink,
    SliceResponse,
    UploadSessionInfo,
    UserProfile,
)
from graph_tutorial.utils.logger import get_logger

logger = get_logger("graph_tutorial.mock_provider")

DEFAULT_PROFILE = UserProfile(
    displayName="Offline User",
    mail="offline.user@example.com",
    userPrincipalName="offline.user@example.com",
)
INBOX_KEYS = ("from", "isRead", "receivedDateTime", "subject")


@dataclass
class _PendingUpload:
    path: str
    total: int | None = None
    buffer: bytearray = field(default_factory=bytearray)


class LocalGraphMock:
    """Offline stand-in for GraphProvider backed by a local directory.

    Upload sessions only accept the next expected byte range, like the real service.
    """

    def __init__(self, root_dir: Path, profile: UserProfile | None = None):
        self._root_dir = Path(root_dir)
        self._drive_dir = self._root_dir / "drive"
        self._inbox_path = self._root_dir / "inbox.json"
        self._sent_items_path = self._root_dir / "sent_items.json"
        self._profile = profile or DEFAULT_PROFILE
        self._sessions: dict[str, _PendingUpload] = {}
        self._drive_dir.mkdir(parents=True, exist_ok=True)
        logger.info("mock_provider.init", root_dir=str(self._root_dir))

    def _resolve(self, path: str) -> Path:
        target = (self._drive_dir / path).resolve()
        if not target.is_relative_to(self._drive_dir.resolve()):
            raise RemoteOperationFailure(f"invalidRequest: path escapes drive root: {path}", status_code=400)
        return target

    def _summary(self, path: Path) -> DriveItemSummary:
        rel = path.relative_to(self._drive_dir.resolve()).as_posix()
        return DriveItemSummary(
            id=f"local:{rel}",
            name=path.name,
            size=None if path.is_dir() else path.stat().st_size,
            isFolder=path.is_dir(),
        )

    async def get_me(self) -> UserProfile:
        return self._profile

    async def list_inbox(self, top: int = 25) -> list[InboxMessage]:
        if not self._inbox_path.exists():
            logger.debug("mock_provider.inbox_missing", inbox_path=str(self._inbox_path))
            return []
        data = json.loads(self._inbox_path.read_text(encoding="utf-8"))
        items = data if isinstance(data, list) else data.get("value", [])
        messages = []
        for item in items:
            try:
                messages.append(InboxMessage.model_validate({k: item[k] for k in INBOX_KEYS if k in item}))
            except ValueError:
                continue
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        messages.sort(key=lambda m: m.receivedDateTime or oldest, reverse=True)
        return messages[:top]

    async def send_mail(self, subject: str, body: str, recipient: str) -> None:
        sent: list[dict[str, Any]] = []
        if self._sent_items_path.exists():
            sent = json.loads(self._sent_items_path.read_text(encoding="utf-8"))
        sent.append({
            "subject": subject,
            "body": {"contentType": "text", "content": body},
            "toRecipients": [{"emailAddress": {"address": recipient}}],
            "sentDateTime": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        })
        self._sent_items_path.write_text(json.dumps(sent, indent=2), encoding="utf-8")
        logger.info("mock_provider.send_mail", recipient=recipient, count=len(sent))

    async def list_root_children(self) -> list[DriveItemSummary]:
        return [self._summary(p.resolve()) for p in sorted(self._drive_dir.iterdir())]

    async def upload_content(self, path: str, content: bytes) -> DriveItemSummary:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return self._summary(target)

    async def delete_item(self, path: str) -> None:
        target = self._resolve(path)
        if not target.is_file():
            raise RemoteOperationFailure(f"itemNotFound: {path}", status_code=404)
        target.unlink()

    async def download_content(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise RemoteOperationFailure(f"itemNotFound: {path}", status_code=404)
        return target.read_bytes()

    async def create_upload_session(self, path: str, conflict_behavior: str = "replace") -> UploadSessionInfo:
        target = self._resolve(path)
        if conflict_behavior == "fail" and target.exists():
            raise RemoteOperationFailure(f"nameAlreadyExists: {path}", status_code=409)
        url = f"local://upload/{uuid.uuid4().hex}"
        self._sessions[url] = _PendingUpload(path=path)
        return UploadSessionInfo(
            uploadUrl=url,
            expirationDateTime=datetime.now(timezone.utc) + timedelta(hours=1),
            nextExpectedRanges=["0-"],
        )

    async def upload_slice(self, session: UploadSessionInfo, data: bytes, start: int, total: int) -> SliceResponse:
        pending = self._sessions.get(session.uploadUrl)
        if pending is None:
            raise RemoteOperationFailure("itemNotFound: upload session does not exist", status_code=404)
        if pending.total is None:
            pending.total = total
        expected = len(pending.buffer)
        if start != expected or total != pending.total or expected + len(data) > total:
            raise RemoteOperationFailure(
                f"invalidRange: expected bytes {expected}- of {pending.total}, got {start}-{start + len(data) - 1}/{total}",
                status_code=416,
            )
        pending.buffer.extend(data)
        if len(pending.buffer) < total:
            return SliceResponse(nextExpectedRanges=[f"{len(pending.buffer)}-"])
        del self._sessions[session.uploadUrl]
        item = await self.upload_content(pending.path, bytes(pending.buffer))
        logger.info("mock_provider.upload_complete", path=pending.path, size=total)
        return SliceResponse(item=item)

    async def cancel_upload_session(self, session: UploadSessionInfo) -> None:
        self._sessions.pop(session.uploadUrl, None)

    async def create_link(self, path: str, link_type: str, scope: str, password: str | None = None) -> SharingLink:
        target = self._resolve(path)
        if not target.exists():
            raise RemoteOperationFailure(f"itemNotFound: {path}", status_code=404)
        url = f"https://onedrive.local/{quote(path)}?type={link_type}&scope={scope}"
        return SharingLink(webUrl=url, type=link_type, scope=scope)
