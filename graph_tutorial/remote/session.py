"""Lazily built Graph session bound to the credential store."""

from typing import Any, Callable, Iterable

from graph_tutorial.auth.token_cache import CredentialStore, DeviceCodeTokenProvider
from graph_tutorial.errors import NotInitialized
from graph_tutorial.remote.protocol import GraphRemote
from graph_tutorial.utils.logger import get_logger

logger = get_logger("graph_tutorial.session")

RemoteFactory = Callable[[Any, Iterable[str]], GraphRemote]


def _default_factory(credential: Any, scopes: Iterable[str]) -> GraphRemote:
    from graph_tutorial.remote.graph_real import build_graph_provider

    return build_graph_provider(credential, scopes)


class RemoteSession:
    """Single place that enforces "sign in first" for every operation.

    ensure_session() builds the remote handle on first use and returns the same instance afterwards.
    """

    def __init__(self, store: CredentialStore, factory: RemoteFactory | None = None):
        self._store = store
        self._factory = factory or _default_factory
        self._handle: GraphRemote | None = None

    @classmethod
    def offline(cls, handle: GraphRemote) -> "RemoteSession":
        """Session pre-bound to a local handle; no sign-in, so token requests raise NotInitialized."""
        session = cls(CredentialStore(token_cache_path=None))
        session._handle = handle
        return session

    @property
    def store(self) -> CredentialStore:
        return self._store

    def ensure_session(self) -> GraphRemote:
        if self._handle is not None:
            return self._handle
        if not self._store.is_initialized:
            raise NotInitialized()
        scopes = self._store.settings.graph_user_scopes
        self._handle = self._factory(DeviceCodeTokenProvider(self._store), scopes)
        logger.info("session.created", scopes=list(scopes))
        return self._handle

    async def aclose(self) -> None:
        """Release the remote handle's resources; the next ensure_session() builds a new one."""
        handle, self._handle = self._handle, None
        close = getattr(handle, "aclose", None)
        if close is not None:
            await close()
            logger.info("session.closed")
