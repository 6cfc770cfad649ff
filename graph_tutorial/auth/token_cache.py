"""MSAL device code sign-in with a persistent token cache. Tokens are reused, then refreshed silently, then re-issued via device code."""

import asyncio
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable

import msal
from azure.core.credentials import AccessToken
from azure.core.credentials_async import AsyncTokenCredential
from pydantic import BaseModel

from graph_tutorial.config import (
    TOKEN_CACHE_ENABLED,
    TOKEN_CACHE_PATH,
    TOKEN_REFRESH_SKEW_SECONDS,
    Settings,
)
from graph_tutorial.errors import AuthenticationFailure, InvalidConfiguration, NotInitialized
from graph_tutorial.utils.logger import get_logger

logger = get_logger("graph_tutorial.auth")

AUTHORITY_HOST = "https://login.microsoftonline.com"
DEFAULT_CACHE_PATH = TOKEN_CACHE_PATH if TOKEN_CACHE_ENABLED else None


class DeviceCodeChallenge(BaseModel):
    """What the user needs to complete sign-in on another device."""

    verification_url: str
    user_code: str
    expires_at: datetime
    message: str = ""


# Awaited before polling starts; the event may be set to abandon the sign-in
DevicePrompt = Callable[[DeviceCodeChallenge, threading.Event], Awaitable[None]]


def _load_cache(path: Path | None) -> msal.SerializableTokenCache:
    """Create a SerializableTokenCache and load from disk if file exists."""
    cache = msal.SerializableTokenCache()
    if path is not None and path.exists():
        try:
            cache.deserialize(path.read_text(encoding="utf-8"))
        except Exception as e:
            logger.warning("auth.token_cache.load_error", path=str(path), error=str(e))
    return cache


def _save_cache(cache: msal.SerializableTokenCache, path: Path | None) -> None:
    """Persist token cache to disk."""
    if path is None or not cache.has_state_changed:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(cache.serialize(), encoding="utf-8")


def challenge_from_flow(flow: dict[str, Any]) -> DeviceCodeChallenge:
    """Project an MSAL device flow dict onto a DeviceCodeChallenge."""
    expires_at = flow.get("expires_at") or time.time() + int(flow.get("expires_in", 0))
    return DeviceCodeChallenge(
        verification_url=flow.get("verification_uri") or flow.get("verification_url", ""),
        user_code=flow["user_code"],
        expires_at=datetime.fromtimestamp(float(expires_at), tz=timezone.utc),
        message=flow.get("message", ""),
    )


class CredentialStore:
    """Settings plus the MSAL public client for one signed-in user.

    Not safe for concurrent get_token calls; callers run one operation at a time.
    """

    def __init__(
        self,
        token_cache_path: Path | None = DEFAULT_CACHE_PATH,
        app_factory: Callable[..., Any] = msal.PublicClientApplication,
    ):
        self._cache_path = token_cache_path
        self._app_factory = app_factory
        self._settings: Settings | None = None
        self._prompt: DevicePrompt | None = None
        self._cache: msal.SerializableTokenCache | None = None
        self._app: Any = None
        self._token: AccessToken | None = None
        self._token_scopes: tuple[str, ...] = ()
        self._cancel = threading.Event()

    @property
    def is_initialized(self) -> bool:
        return self._app is not None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            raise NotInitialized()
        return self._settings

    def initialize(self, settings: Settings, device_prompt: DevicePrompt) -> None:
        """Store settings and build the public client. Raises InvalidConfiguration on bad settings."""
        if not settings.client_id or not settings.tenant_id:
            raise InvalidConfiguration("Client id and tenant id are required")
        if not settings.graph_user_scopes:
            raise InvalidConfiguration("Argument 'scopes' cannot be empty")
        cache = _load_cache(self._cache_path)
        try:
            app = self._app_factory(
                client_id=settings.client_id,
                authority=f"{AUTHORITY_HOST}/{settings.tenant_id}",
                token_cache=cache,
            )
        except ValueError as e:
            raise InvalidConfiguration(f"Invalid tenant or client id: {e}") from e
        self._settings = settings
        self._prompt = device_prompt
        self._cache = cache
        self._app = app
        self._token = None
        self._token_scopes = ()
        logger.info(
            "auth.initialized",
            tenant_id=settings.tenant_id[:8],
            client_id=settings.client_id[:8],
            scopes=list(settings.graph_user_scopes),
        )

    async def get_token(self, scopes: Iterable[str] | None = None) -> AccessToken:
        """Return a bearer token for the given scopes (configured scopes by default)."""
        if self._app is None:
            raise NotInitialized()
        scope_list = list(scopes) if scopes else list(self.settings.graph_user_scopes)
        key = tuple(scope_list)
        token = self._token
        if token is not None and self._token_scopes == key and token.expires_on - TOKEN_REFRESH_SKEW_SECONDS > time.time():
            logger.debug("auth.token.memory_hit", expires_on=token.expires_on)
            return token

        try:
            result = await asyncio.to_thread(self._acquire_silent, scope_list)
        except ValueError as e:
            raise InvalidConfiguration(f"Invalid scopes {scope_list}: {e}") from e
        if result:
            logger.debug("auth.token.silent", scopes=scope_list)
        else:
            result = await self._acquire_by_device_code(scope_list)

        _save_cache(self._cache, self._cache_path)
        expires_on = int(time.time()) + int(result.get("expires_in", 0))
        self._token = AccessToken(token=result["access_token"], expires_on=expires_on)
        self._token_scopes = key
        return self._token

    def invalidate(self) -> None:
        """Forget the in-memory token; the next get_token goes back to MSAL."""
        self._token = None
        self._token_scopes = ()
        logger.info("auth.token.invalidated")

    def cancel_sign_in(self) -> None:
        """Abandon a pending device code sign-in."""
        self._cancel.set()

    def _acquire_silent(self, scopes: list[str]) -> dict[str, Any] | None:
        """Cached access token or refresh-token exchange; None when the user must sign in."""
        accounts = self._app.get_accounts()
        if not accounts:
            return None
        result = self._app.acquire_token_silent(scopes, account=accounts[0])
        if result and "access_token" in result:
            return result
        return None

    async def _acquire_by_device_code(self, scopes: list[str]) -> dict[str, Any]:
        try:
            flow = await asyncio.to_thread(self._app.initiate_device_flow, scopes=scopes)
        except ValueError as e:
            raise InvalidConfiguration(f"Invalid scopes {scopes}: {e}") from e
        if not flow or "user_code" not in flow:
            detail = (flow or {}).get("error_description") or (flow or {}).get("error") or "Failed to create device flow"
            logger.error("auth.device_code.initiate_error", scopes=scopes, error=detail)
            raise InvalidConfiguration(detail)

        challenge = challenge_from_flow(flow)
        cancel = self._cancel
        cancel.clear()
        logger.info(
            "auth.device_code.challenge",
            verification_url=challenge.verification_url,
            expires_at=challenge.expires_at.isoformat(),
        )

        def _should_stop(f: dict[str, Any]) -> bool:
            return cancel.is_set() or f.get("expires_at", 0) < time.time()

        try:
            await self._prompt(challenge, cancel)
            if cancel.is_set():
                raise AuthenticationFailure("Device code sign-in was cancelled")
            result = await asyncio.to_thread(
                self._app.acquire_token_by_device_flow,
                flow,
                exit_condition=_should_stop,
            )
        except asyncio.CancelledError:
            # Stop the polling thread too
            cancel.set()
            raise

        if "access_token" not in (result or {}):
            if cancel.is_set():
                raise AuthenticationFailure("Device code sign-in was cancelled")
            detail = (result or {}).get("error_description") or (result or {}).get("error") or "Device flow failed"
            logger.error("auth.device_code.error", error=detail)
            raise AuthenticationFailure(detail)
        logger.info("auth.device_code.complete")
        return result


class DeviceCodeTokenProvider(AsyncTokenCredential):
    """Async azure-core token credential backed by a CredentialStore, for GraphServiceClient."""

    def __init__(self, store: CredentialStore):
        self._store = store

    async def get_token(
        self,
        *scopes: str,
        claims: str | None = None,
        tenant_id: str | None = None,
        enable_cae: bool = False,
        **kwargs: Any,
    ) -> AccessToken:
        return await self._store.get_token(scopes or None)

    async def close(self) -> None:
        pass

    async def __aexit__(self, exc_type=None, exc_value=None, traceback=None) -> None:
        await self.close()
