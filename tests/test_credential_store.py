"""Tests for CredentialStore: initialization, token reuse, silent refresh, device code flow, cancellation."""

import asyncio
import sys
import threading
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from graph_tutorial.auth import CredentialStore, DeviceCodeTokenProvider
from graph_tutorial.config import Settings
from graph_tutorial.errors import AuthenticationFailure, InvalidConfiguration, NotInitialized
from tests.fakes import FakeMsalApp, TOKEN_RESULT


def _settings(scopes=("User.Read", "Mail.Read")) -> Settings:
    return Settings(client_id="11111111-2222-3333-4444-555555555555", tenant_id="common", graph_user_scopes=list(scopes))


class PromptRecorder:
    """Device prompt callback that records challenges; optionally cancels."""

    def __init__(self, cancel_immediately: bool = False, cancel_after: float | None = None, store=None):
        self.challenges = []
        self.cancel_immediately = cancel_immediately
        self.cancel_after = cancel_after
        self.store = store

    async def __call__(self, challenge, cancel: threading.Event) -> None:
        self.challenges.append(challenge)
        if self.cancel_immediately:
            cancel.set()
        if self.cancel_after is not None:
            threading.Timer(self.cancel_after, self.store.cancel_sign_in).start()


class TestCredentialStore(unittest.TestCase):
    """Token lifecycle through a fake MSAL public client."""

    def _store(self, app: FakeMsalApp, prompt=None, scopes=("User.Read", "Mail.Read")):
        store = CredentialStore(token_cache_path=None, app_factory=app.factory)
        store.initialize(_settings(scopes), prompt or PromptRecorder())
        return store

    def test_get_token_before_initialize_raises(self):
        """get_token without initialize fails with NotInitialized and touches nothing."""
        app = FakeMsalApp()
        store = CredentialStore(token_cache_path=None, app_factory=app.factory)
        with self.assertRaises(NotInitialized):
            asyncio.run(store.get_token())
        self.assertFalse(store.is_initialized)
        self.assertEqual(app.calls, [])
        with self.assertRaises(NotInitialized):
            _ = store.settings

    def test_initialize_builds_authority_from_tenant(self):
        app = FakeMsalApp()
        store = self._store(app)
        self.assertTrue(store.is_initialized)
        self.assertEqual(app.init_kwargs["authority"], "https://login.microsoftonline.com/common")
        self.assertEqual(app.init_kwargs["client_id"], "11111111-2222-3333-4444-555555555555")

    def test_initialize_rejected_authority_is_invalid_configuration(self):
        def bad_factory(**kwargs):
            raise ValueError("Unable to get authority configuration")

        store = CredentialStore(token_cache_path=None, app_factory=bad_factory)
        with self.assertRaises(InvalidConfiguration):
            store.initialize(_settings(), PromptRecorder())
        self.assertFalse(store.is_initialized)

    def test_device_code_flow_prompts_and_returns_token(self):
        """No cached account: the challenge is shown, then polling yields the token."""
        app = FakeMsalApp()
        prompt = PromptRecorder()
        store = self._store(app, prompt)
        token = asyncio.run(store.get_token())
        self.assertEqual(token.token, TOKEN_RESULT["access_token"])
        self.assertEqual(len(prompt.challenges), 1)
        challenge = prompt.challenges[0]
        self.assertEqual(challenge.user_code, "ABCD-1234")
        self.assertEqual(challenge.verification_url, "https://microsoft.com/devicelogin")
        self.assertEqual(app.calls[0], ("initiate", ["User.Read", "Mail.Read"]))
        self.assertEqual(app.count("poll"), 1)

    def test_token_reused_while_valid(self):
        app = FakeMsalApp()
        store = self._store(app)

        async def run():
            first = await store.get_token()
            second = await store.get_token()
            return first, second

        first, second = asyncio.run(run())
        self.assertIs(first, second)
        self.assertEqual(app.count("initiate"), 1)

    def test_silent_acquisition_skips_prompt(self):
        """A cached account with a valid refresh token never shows a device code."""
        app = FakeMsalApp(
            accounts=[{"username": "megan@contoso.com"}],
            silent_result={"access_token": "silent-token", "expires_in": 3600},
        )
        prompt = PromptRecorder()
        store = self._store(app, prompt)
        token = asyncio.run(store.get_token())
        self.assertEqual(token.token, "silent-token")
        self.assertEqual(prompt.challenges, [])
        self.assertEqual(app.count("initiate"), 0)

    def test_invalidate_forces_refresh(self):
        app = FakeMsalApp(
            accounts=[{"username": "megan@contoso.com"}],
            silent_result={"access_token": "silent-token", "expires_in": 3600},
        )
        store = self._store(app)

        async def run():
            await store.get_token()
            store.invalidate()
            await store.get_token()

        asyncio.run(run())
        self.assertEqual(app.count("silent"), 2)

    def test_expiring_token_is_refreshed(self):
        """A token inside the refresh window is not reused."""
        app = FakeMsalApp(device_result={"access_token": "short-lived", "expires_in": 60})
        store = self._store(app)

        async def run():
            await store.get_token()
            await store.get_token()

        asyncio.run(run())
        self.assertEqual(app.count("initiate"), 2)

    def test_failed_flow_start_is_invalid_configuration(self):
        """A bad scope/tenant makes MSAL return an error instead of a user code: fail fast, no polling."""
        app = FakeMsalApp(flow={"error": "invalid_scope", "error_description": "AADSTS70011: invalid scope"})
        prompt = PromptRecorder()
        store = self._store(app, prompt)
        with self.assertRaises(InvalidConfiguration) as ctx:
            asyncio.run(store.get_token())
        self.assertIn("AADSTS70011", str(ctx.exception))
        self.assertEqual(prompt.challenges, [])
        self.assertEqual(app.count("poll"), 0)

    def test_device_flow_error_is_authentication_failure(self):
        app = FakeMsalApp(device_result={"error": "expired_token", "error_description": "Code expired"})
        store = self._store(app)
        with self.assertRaises(AuthenticationFailure) as ctx:
            asyncio.run(store.get_token())
        self.assertIn("Code expired", str(ctx.exception))

    def test_cancel_in_prompt_skips_polling(self):
        app = FakeMsalApp()
        store = self._store(app, PromptRecorder(cancel_immediately=True))
        with self.assertRaises(AuthenticationFailure) as ctx:
            asyncio.run(store.get_token())
        self.assertIn("cancelled", str(ctx.exception))
        self.assertEqual(app.count("poll"), 0)

    def test_cancel_sign_in_stops_polling(self):
        """cancel_sign_in() from another thread ends the polling loop."""
        app = FakeMsalApp(poll_until_exit=True)
        store = CredentialStore(token_cache_path=None, app_factory=app.factory)
        store.initialize(_settings(), PromptRecorder(cancel_after=0.05, store=store))
        with self.assertRaises(AuthenticationFailure) as ctx:
            asyncio.run(store.get_token())
        self.assertIn("cancelled", str(ctx.exception))
        self.assertEqual(app.count("poll"), 1)

    def test_token_provider_delegates_to_store(self):
        app = FakeMsalApp()
        store = self._store(app)
        provider = DeviceCodeTokenProvider(store)

        async def run():
            token = await provider.get_token("User.Read")
            await provider.close()
            return token

        token = asyncio.run(run())
        self.assertEqual(token.token, TOKEN_RESULT["access_token"])
        self.assertEqual(app.calls[0], ("initiate", ["User.Read"]))


if __name__ == "__main__":
    unittest.main()
