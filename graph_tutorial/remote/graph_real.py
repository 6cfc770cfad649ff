"""Real Microsoft Graph provider (async): profile, mail and OneDrive calls for the signed-in user."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import httpx
from kiota_abstractions.api_error import APIError
from kiota_abstractions.base_request_configuration import RequestConfiguration
from msgraph import GraphServiceClient
from msgraph.generated.drives.item.items.item.create_link.create_link_post_request_body import (
    CreateLinkPostRequestBody,
)
from msgraph.generated.drives.item.items.item.create_upload_session.create_upload_session_post_request_body import (
    CreateUploadSessionPostRequestBody,
)
from msgraph.generated.models.body_type import BodyType
from msgraph.generated.models.drive_item import DriveItem as GraphSDKDriveItem
from msgraph.generated.models.drive_item_uploadable_properties import DriveItemUploadableProperties
from msgraph.generated.models.email_address import EmailAddress as GraphSDKEmailAddress
from msgraph.generated.models.item_body import ItemBody as GraphSDKItemBody
from msgraph.generated.models.message import Message as GraphSDKMessage
from msgraph.generated.models.recipient import Recipient as GraphSDKRecipient
from msgraph.generated.users.item.mail_folders.item.messages.messages_request_builder import (
    MessagesRequestBuilder,
)
from msgraph.generated.users.item.send_mail.send_mail_post_request_body import (
    SendMailPostRequestBody,
)
from msgraph.generated.users.item.user_item_request_builder import UserItemRequestBuilder

from graph_tutorial.errors import GraphTutorialError, RemoteOperationFailure
from graph_tutorial.remote.graph_models import (
    DriveItemSummary,
    EmailAddress,
    InboxMessage,
    Recipient,
    SharingLink,
    SliceResponse,
    UploadSessionInfo,
    UserProfile,
)
from graph_tutorial.utils.logger import get_logger

logger = get_logger("graph_tutorial.graph_provider")

PROFILE_FIELDS = ["displayName", "mail", "userPrincipalName"]
INBOX_FIELDS = ["from", "isRead", "receivedDateTime", "subject"]
CONFLICT_BEHAVIOR_KEY = "@microsoft.graph.conflictBehavior"


def _describe_error(e: Exception) -> str:
    """Human-readable message for SDK (ODataError) and transport errors."""
    error = getattr(e, "error", None)
    if error is not None and getattr(error, "message", None):
        code = getattr(error, "code", None)
        return f"{code}: {error.message}" if code else error.message
    return str(e).strip() or repr(e)


@contextmanager
def _graph_call(action: str, **context: Any) -> Iterator[None]:
    """Wrap SDK/transport errors in RemoteOperationFailure; our own errors pass through."""
    try:
        yield
    except GraphTutorialError:
        raise
    except (APIError, httpx.HTTPError, OSError) as e:
        status_code = getattr(e, "response_status_code", None)
        detail = _describe_error(e)
        logger.error(
            f"graph_provider.{action}.error",
            error=detail,
            error_type=type(e).__name__,
            status_code=status_code,
            **context,
        )
        raise RemoteOperationFailure(f"{action} failed: {detail}", status_code=status_code) from e


def _convert_drive_item(item: GraphSDKDriveItem) -> DriveItemSummary:
    return DriveItemSummary(
        id=item.id or "",
        name=item.name or "",
        size=item.size,
        isFolder=item.folder is not None,
    )


def _convert_inbox_message(msg: GraphSDKMessage) -> InboxMessage:
    """Project an SDK message onto the selected inbox fields."""
    from_recipient = None
    if msg.from_ and msg.from_.email_address:
        from_recipient = Recipient(
            emailAddress=EmailAddress(
                address=msg.from_.email_address.address,
                name=msg.from_.email_address.name,
            )
        )
    return InboxMessage(
        from_=from_recipient,
        isRead=bool(msg.is_read),
        receivedDateTime=msg.received_date_time,
        subject=msg.subject or "",
    )


def _json_body(resp: httpx.Response, action: str) -> dict[str, Any]:
    """Decode a JSON object body; anything else (gateway HTML, empty) is a RemoteOperationFailure."""
    try:
        data = resp.json()
    except ValueError as e:
        logger.error(f"graph_provider.{action}.bad_body", status_code=resp.status_code, error=str(e))
        raise RemoteOperationFailure(
            f"{action} failed: response is not JSON ({resp.headers.get('content-type', 'no content type')})",
            status_code=resp.status_code,
        ) from e
    if not isinstance(data, dict):
        raise RemoteOperationFailure(f"{action} failed: expected a JSON object", status_code=resp.status_code)
    return data


def _drive_item_from_json(data: dict[str, Any]) -> DriveItemSummary:
    return DriveItemSummary(
        id=data.get("id", ""),
        name=data.get("name", ""),
        size=data.get("size"),
        isFolder="folder" in data,
    )


class GraphProvider:
    """Microsoft Graph provider for delegated (device code) access via the /me endpoint.

    Drive operations resolve the user's drive and its root on every call; item paths are
    addressed relative to the root ("{root-id}:/{path}:"). Upload-session slices go straight
    to the pre-authenticated upload URL, so they carry no bearer token.
    """

    def __init__(self, client: GraphServiceClient, http_client: httpx.AsyncClient | None = None):
        self._client = client
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(60.0))

    async def aclose(self) -> None:
        """Close the upload-URL HTTP client."""
        await self._http.aclose()
        logger.debug("graph_provider.closed")

    async def get_me(self) -> UserProfile:
        query_params = UserItemRequestBuilder.UserItemRequestBuilderGetQueryParameters(select=PROFILE_FIELDS)
        config = RequestConfiguration(query_parameters=query_params)
        with _graph_call("get_me"):
            user = await self._client.me.get(request_configuration=config)
        if user is None:
            raise RemoteOperationFailure("get_me failed: empty response")
        logger.debug("graph_provider.get_me")
        return UserProfile(
            displayName=user.display_name,
            mail=user.mail,
            userPrincipalName=user.user_principal_name,
        )

    async def list_inbox(self, top: int = 25) -> list[InboxMessage]:
        query_params = MessagesRequestBuilder.MessagesRequestBuilderGetQueryParameters(
            select=INBOX_FIELDS,
            top=top,
            orderby=["receivedDateTime DESC"],
        )
        config = RequestConfiguration(query_parameters=query_params)
        with _graph_call("list_inbox"):
            result = await self._client.me.mail_folders.by_mail_folder_id("inbox").messages.get(
                request_configuration=config,
            )
        messages = [_convert_inbox_message(m) for m in ((result and result.value) or [])]
        logger.debug("graph_provider.list_inbox", count=len(messages))
        return messages

    async def send_mail(self, subject: str, body: str, recipient: str) -> None:
        message = GraphSDKMessage(
            subject=subject,
            body=GraphSDKItemBody(content_type=BodyType.Text, content=body),
            to_recipients=[
                GraphSDKRecipient(email_address=GraphSDKEmailAddress(address=recipient)),
            ],
        )
        request_body = SendMailPostRequestBody(message=message)
        with _graph_call("send_mail", recipient=recipient):
            await self._client.me.send_mail.post(body=request_body)
        logger.info("graph_provider.send_mail", recipient=recipient)

    async def _resolve_root(self) -> tuple[str, str]:
        """Return (drive_id, root_item_id) for the signed-in user's OneDrive."""
        with _graph_call("resolve_drive"):
            drive = await self._client.me.drive.get()
            if drive is None or not drive.id:
                raise RemoteOperationFailure("resolve_drive failed: user has no drive")
            root = await self._client.drives.by_drive_id(drive.id).root.get()
        if root is None or not root.id:
            raise RemoteOperationFailure("resolve_drive failed: drive has no root")
        return drive.id, root.id

    async def _item(self, path: str):
        drive_id, root_id = await self._resolve_root()
        return self._client.drives.by_drive_id(drive_id).items.by_drive_item_id(f"{root_id}:/{path}:")

    async def list_root_children(self) -> list[DriveItemSummary]:
        drive_id, root_id = await self._resolve_root()
        with _graph_call("list_root_children"):
            result = await self._client.drives.by_drive_id(drive_id).items.by_drive_item_id(root_id).children.get()
        items = [_convert_drive_item(i) for i in ((result and result.value) or [])]
        logger.debug("graph_provider.list_root_children", count=len(items))
        return items

    async def upload_content(self, path: str, content: bytes) -> DriveItemSummary:
        item = await self._item(path)
        with _graph_call("upload_content", path=path):
            uploaded = await item.content.put(content)
        logger.info("graph_provider.upload_content", path=path, size=len(content))
        if uploaded is None:
            return DriveItemSummary(id="", name=path, size=len(content))
        return _convert_drive_item(uploaded)

    async def delete_item(self, path: str) -> None:
        item = await self._item(path)
        with _graph_call("delete_item", path=path):
            await item.delete()
        logger.info("graph_provider.delete_item", path=path)

    async def download_content(self, path: str) -> bytes:
        item = await self._item(path)
        with _graph_call("download_content", path=path):
            content = await item.content.get()
        if content is None:
            raise RemoteOperationFailure(f"download_content failed: no content for {path}")
        logger.info("graph_provider.download_content", path=path, size=len(content))
        return content

    async def create_upload_session(self, path: str, conflict_behavior: str = "replace") -> UploadSessionInfo:
        item = await self._item(path)
        request_body = CreateUploadSessionPostRequestBody(
            item=DriveItemUploadableProperties(
                additional_data={CONFLICT_BEHAVIOR_KEY: conflict_behavior},
            ),
        )
        with _graph_call("create_upload_session", path=path):
            session = await item.create_upload_session.post(request_body)
        if session is None or not session.upload_url:
            raise RemoteOperationFailure(f"create_upload_session failed: no upload URL for {path}")
        logger.info("graph_provider.create_upload_session", path=path)
        return UploadSessionInfo(
            uploadUrl=session.upload_url,
            expirationDateTime=session.expiration_date_time,
            nextExpectedRanges=session.next_expected_ranges or [],
        )

    async def upload_slice(self, session: UploadSessionInfo, data: bytes, start: int, total: int) -> SliceResponse:
        end = start + len(data) - 1
        headers = {
            "Content-Length": str(len(data)),
            "Content-Range": f"bytes {start}-{end}/{total}",
        }
        with _graph_call("upload_slice", start=start, end=end, total=total):
            resp = await self._http.put(session.uploadUrl, content=data, headers=headers)
        if resp.status_code == 202:
            payload = _json_body(resp, "upload_slice") if resp.content else {}
            return SliceResponse(nextExpectedRanges=payload.get("nextExpectedRanges", []))
        if resp.status_code in (200, 201):
            return SliceResponse(item=_drive_item_from_json(_json_body(resp, "upload_slice")))
        detail = resp.text.strip() or resp.reason_phrase
        logger.error("graph_provider.upload_slice.rejected", start=start, end=end, status_code=resp.status_code)
        raise RemoteOperationFailure(
            f"upload_slice failed for bytes {start}-{end}: {detail}",
            status_code=resp.status_code,
        )

    async def cancel_upload_session(self, session: UploadSessionInfo) -> None:
        with _graph_call("cancel_upload_session"):
            resp = await self._http.delete(session.uploadUrl)
        logger.info("graph_provider.cancel_upload_session", status_code=resp.status_code)

    async def create_link(self, path: str, link_type: str, scope: str, password: str | None = None) -> SharingLink:
        item = await self._item(path)
        request_body = CreateLinkPostRequestBody(type=link_type, scope=scope, password=password)
        with _graph_call("create_link", path=path, link_type=link_type, scope=scope):
            permission = await item.create_link.post(request_body)
        if permission is None or permission.link is None or not permission.link.web_url:
            raise RemoteOperationFailure(f"create_link failed: no link returned for {path}")
        logger.info("graph_provider.create_link", path=path, link_type=link_type, scope=scope)
        return SharingLink(webUrl=permission.link.web_url, type=permission.link.type, scope=permission.link.scope)


def build_graph_provider(credential, scopes) -> GraphProvider:
    """Create a GraphProvider whose client authenticates with the given async token credential."""
    client = GraphServiceClient(credentials=credential, scopes=list(scopes))
    return GraphProvider(client)
