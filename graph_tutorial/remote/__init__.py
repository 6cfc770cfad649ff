"""Remote provider: Graph-like interface, mock implementation, session and chunked upload."""

from graph_tutorial.remote.chunked_upload import ChunkedUploadCoordinator
from graph_tutorial.remote.graph_mock import LocalGraphMock
from graph_tutorial.remote.graph_models import (
    DriveItemSummary,
    EmailAddress,
    InboxMessage,
    Recipient,
    SharingLink,
    SliceResponse,
    UploadResult,
    UploadSessionInfo,
    UserProfile,
)
from graph_tutorial.remote.protocol import GraphRemote
from graph_tutorial.remote.session import RemoteSession

__all__ = [
    "ChunkedUploadCoordinator",
    "DriveItemSummary",
    "EmailAddress",
    "GraphRemote",
    "InboxMessage",
    "LocalGraphMock",
    "Recipient",
    "RemoteSession",
    "SharingLink",
    "SliceResponse",
    "UploadResult",
    "UploadSessionInfo",
    "UserProfile",
]
