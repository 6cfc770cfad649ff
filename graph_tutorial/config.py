"""Configuration and settings."""

import json
import os
import re
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from graph_tutorial.errors import InvalidConfiguration

load_dotenv()

# Paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
OUTPUT_DIR = PROJECT_ROOT / "output"
SETTINGS_PATH = Path(os.getenv("SETTINGS_PATH", str(PROJECT_ROOT / "appsettings.json")))

# Logging
LOG_DIR = OUTPUT_DIR / "logs"
LOG_FILE = LOG_DIR / "app.jsonl"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
VERBOSE_LOGGING = os.getenv("VERBOSE_LOGGING", "false").lower() == "true"

# Token cache (MSAL SerializableTokenCache persisted as JSON)
TOKEN_CACHE_PATH = Path(
    os.getenv("TOKEN_CACHE_PATH", str(Path.home() / ".graph-tutorial" / "token_cache.json"))
)
TOKEN_CACHE_ENABLED = os.getenv("TOKEN_CACHE_ENABLED", "true").lower() == "true"
# Reuse an in-memory token only while it has more than this many seconds left
TOKEN_REFRESH_SKEW_SECONDS = int(os.getenv("TOKEN_REFRESH_SKEW_SECONDS", "300"))

# OneDrive operations
DOWNLOAD_DIR = Path(os.getenv("DOWNLOAD_DIR", str(Path.cwd())))
SMALL_FILE_PATH = os.getenv("SMALL_FILE_PATH", "test.txt")
SMALL_FILE_CONTENT = "The contents of the file goes here."
LARGE_FILE_PATH = os.getenv("LARGE_FILE_PATH", "TestSizeFile.txt")
LARGE_FILE_SIZE_BYTES = int(os.getenv("LARGE_FILE_SIZE_BYTES", str(10 * 1024 * 1024)))
# Upload session slices must be a multiple of 320 KiB
SLICE_SIZE_UNIT = 320 * 1024
UPLOAD_SLICE_SIZE_BYTES = int(os.getenv("UPLOAD_SLICE_SIZE_BYTES", str(SLICE_SIZE_UNIT)))

# Sharing links
SHARE_LINK_TYPE = os.getenv("SHARE_LINK_TYPE", "view")
SHARE_LINK_SCOPE = os.getenv("SHARE_LINK_SCOPE", "anonymous")
SHARE_LINK_PASSWORD = os.getenv("SHARE_LINK_PASSWORD", "") or None

# Mail sent by the menu's "Send mail" entry
TEST_MAIL_SUBJECT = "Testing Microsoft Graph"
TEST_MAIL_BODY = "Hello world!"

DEFAULT_TENANT_ID = "common"


class Settings(BaseModel):
    """App registration settings used for delegated (device code) sign-in."""

    client_id: str = Field(..., alias="clientId")
    tenant_id: str = Field(DEFAULT_TENANT_ID, alias="tenantId")
    graph_user_scopes: tuple[str, ...] = Field(..., alias="graphUserScopes")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("client_id", "tenant_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("graph_user_scopes", mode="before")
    @classmethod
    def _normalize_scopes(cls, value):
        if isinstance(value, str):
            value = split_scopes(value)
        scopes: list[str] = []
        for scope in value or []:
            scope = str(scope).strip()
            if scope and scope not in scopes:
                scopes.append(scope)
        if not scopes:
            raise ValueError("at least one scope is required")
        return tuple(scopes)


def split_scopes(raw: str) -> list[str]:
    """Split a comma and/or whitespace separated scope list."""
    return [s for s in re.split(r"[,\s]+", raw or "") if s]


def _read_settings_file(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise InvalidConfiguration(f"Cannot read settings file {path}: {e}") from e
    section = data.get("settings", data) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise InvalidConfiguration(f"Settings file {path} must contain a JSON object")
    return section


def load_settings(path: Path | None = None) -> Settings:
    """Build Settings from an optional JSON file, overridden by CLIENT_ID / TENANT_ID / GRAPH_USER_SCOPES.

    Raises InvalidConfiguration when values are missing or malformed.
    """
    values: dict = {}
    settings_path = path or SETTINGS_PATH
    if path is not None or settings_path.exists():
        values.update(_read_settings_file(settings_path))
    if os.getenv("CLIENT_ID"):
        values["clientId"] = os.environ["CLIENT_ID"]
    if os.getenv("TENANT_ID"):
        values["tenantId"] = os.environ["TENANT_ID"]
    if os.getenv("GRAPH_USER_SCOPES"):
        values["graphUserScopes"] = split_scopes(os.environ["GRAPH_USER_SCOPES"])
    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}" for err in e.errors()
        )
        raise InvalidConfiguration(f"Invalid settings: {problems}") from e
