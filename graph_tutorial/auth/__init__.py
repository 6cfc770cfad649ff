"""Delegated (device code) authentication and token persistence for Graph access."""

from graph_tutorial.auth.token_cache import (
    CredentialStore,
    DeviceCodeChallenge,
    DeviceCodeTokenProvider,
    DevicePrompt,
)

__all__ = [
    "CredentialStore",
    "DeviceCodeChallenge",
    "DeviceCodeTokenProvider",
    "DevicePrompt",
]
