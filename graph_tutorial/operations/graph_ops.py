"""Graph operations behind the menu. Each one calls ensure_session() first and lets its failure propagate."""

from pathlib import Path

from azure.core.credentials import AccessToken

from graph_tutorial.config import (
    DOWNLOAD_DIR,
    LARGE_FILE_PATH,
    LARGE_FILE_SIZE_BYTES,
    SHARE_LINK_PASSWORD,
    SHARE_LINK_SCOPE,
    SHARE_LINK_TYPE,
    SMALL_FILE_CONTENT,
    SMALL_FILE_PATH,
    TEST_MAIL_BODY,
    TEST_MAIL_SUBJECT,
    UPLOAD_SLICE_SIZE_BYTES,
)
from graph_tutorial.errors import RemoteOperationFailure
from graph_tutorial.remote.chunked_upload import ChunkedUploadCoordinator, ProgressCallback
from graph_tutorial.remote.graph_models import (
    DriveItemSummary,
    InboxMessage,
    SharingLink,
    UploadResult,
    UserProfile,
)
from graph_tutorial.remote.session import RemoteSession
from graph_tutorial.utils.logger import get_logger

logger = get_logger("graph_tutorial.operations")

INBOX_PAGE_SIZE = 25


async def get_access_token(session: RemoteSession) -> AccessToken:
    session.ensure_session()
    return await session.store.get_token()


async def who_am_i(session: RemoteSession) -> UserProfile:
    remote = session.ensure_session()
    return await remote.get_me()


async def list_inbox(session: RemoteSession, top: int = INBOX_PAGE_SIZE) -> list[InboxMessage]:
    remote = session.ensure_session()
    return await remote.list_inbox(top=top)


async def send_mail(session: RemoteSession, subject: str, body: str, recipient: str) -> None:
    """Send a plain-text message. The address is not validated locally; Graph rejects bad ones."""
    remote = session.ensure_session()
    await remote.send_mail(subject, body, recipient)
    logger.info("operations.send_mail", recipient=recipient)


async def send_mail_to_self(
    session: RemoteSession,
    subject: str = TEST_MAIL_SUBJECT,
    body: str = TEST_MAIL_BODY,
) -> str:
    """Send a test message to the signed-in user; returns the recipient address."""
    remote = session.ensure_session()
    me = await remote.get_me()
    recipient = me.mail_or_upn
    if not recipient:
        raise RemoteOperationFailure("Signed-in user has neither mail nor userPrincipalName")
    await send_mail(session, subject, body, recipient)
    return recipient


async def list_drive_root_children(session: RemoteSession) -> list[DriveItemSummary]:
    remote = session.ensure_session()
    return await remote.list_root_children()


async def upload_small_file(
    session: RemoteSession,
    path: str = SMALL_FILE_PATH,
    content: bytes = SMALL_FILE_CONTENT.encode("utf-8"),
) -> DriveItemSummary:
    remote = session.ensure_session()
    return await remote.upload_content(path, content)


async def delete_file(session: RemoteSession, path: str = SMALL_FILE_PATH) -> None:
    remote = session.ensure_session()
    await remote.delete_item(path)


async def download_file(
    session: RemoteSession,
    path: str = SMALL_FILE_PATH,
    dest_dir: Path = DOWNLOAD_DIR,
) -> Path:
    """Download a root-relative item into dest_dir (same file name); returns the local path."""
    remote = session.ensure_session()
    content = await remote.download_content(path)
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    target = dest_dir / Path(path).name
    target.write_bytes(content)
    logger.info("operations.download_file", path=path, local_path=str(target), size=len(content))
    return target


def build_large_payload(size: int = LARGE_FILE_SIZE_BYTES) -> bytes:
    """Zero-filled payload of the given size starting with the sample text."""
    header = SMALL_FILE_CONTENT.encode("utf-8")[:size]
    return header + bytes(size - len(header))


async def upload_large_file(
    session: RemoteSession,
    payload: bytes | None = None,
    path: str = LARGE_FILE_PATH,
    slice_size_bytes: int = UPLOAD_SLICE_SIZE_BYTES,
    on_progress: ProgressCallback | None = None,
    coordinator: ChunkedUploadCoordinator | None = None,
) -> UploadResult:
    remote = session.ensure_session()
    if payload is None:
        payload = build_large_payload()
    coordinator = coordinator or ChunkedUploadCoordinator(conflict_behavior="replace")
    return await coordinator.upload(remote, payload, path, slice_size_bytes, on_progress)


async def create_shareable_link(
    session: RemoteSession,
    path: str = LARGE_FILE_PATH,
    link_type: str = SHARE_LINK_TYPE,
    scope: str = SHARE_LINK_SCOPE,
    password: str | None = SHARE_LINK_PASSWORD,
) -> SharingLink:
    remote = session.ensure_session()
    link = await remote.create_link(path, link_type, scope, password)
    logger.info("operations.create_link", path=path, link_type=link_type, scope=scope)
    return link
