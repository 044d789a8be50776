"""
Configuration Management
Connection and tuning settings, validated with pydantic.

Values come from ``SHAREFILE_*`` environment variables and, when present,
a JSON config file whose keys override the environment.
"""
import json
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError
from .http_client import ShareFileClient

DEFAULT_HOME = Path("~/.sharefile-sweep")
DEFAULT_CONFIG_PATH = DEFAULT_HOME / "config.json"
DEFAULT_WORK_DIR = DEFAULT_HOME / "checkpoints"


class Settings(BaseSettings):
    """ShareFile connection and sweep settings"""

    model_config = SettingsConfigDict(
        env_prefix="SHAREFILE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Account location
    subdomain: Optional[str] = None
    base_url: Optional[str] = None   # e.g. https://acme.sf-api.com/sf/v3
    auth_url: Optional[str] = None   # defaults to https://<subdomain>.sharefile.com/oauth/token

    # Credentials: either a bearer token, or the password-grant quartet
    token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    # Transport
    timeout: int = Field(default=30, ge=1, le=600)
    tls_no_verify: bool = False
    ca_bundle: Optional[str] = None
    proxy: Optional[str] = None

    # Concurrent detail fetches during discovery
    workers: int = Field(default=1, ge=1, le=16)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_logs: bool = False

    @property
    def token_url(self) -> Optional[str]:
        if self.auth_url:
            return self.auth_url
        if self.subdomain:
            return f"https://{self.subdomain}.sharefile.com/oauth/token"
        return None

    @property
    def api_url(self) -> Optional[str]:
        if self.base_url:
            return self.base_url
        if self.subdomain:
            return f"https://{self.subdomain}.sf-api.com/sf/v3"
        return None

    @property
    def has_password_grant(self) -> bool:
        return all((self.client_id, self.client_secret, self.username, self.password))


def load_settings(config_path: Optional[Union[str, Path]] = None, **overrides) -> Settings:
    """Build Settings from the environment, the JSON file, then ``overrides``.

    A missing file is not an error; the environment alone may be enough.
    ``None`` overrides are ignored so unset CLI options fall through.
    """
    values = {}
    if config_path is not None:
        path = Path(config_path).expanduser()
        if path.is_file():
            try:
                with open(path, encoding="utf-8") as fh:
                    values = json.load(fh)
            except (OSError, json.JSONDecodeError) as exc:
                raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
            if not isinstance(values, dict):
                raise ConfigError(f"Config file {path} must contain a JSON object")
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def build_client(settings: Settings) -> ShareFileClient:
    """Create an authenticated client from settings.

    Raises:
        ConfigError:     neither a usable token nor password-grant credentials.
        ClientInitError: the password grant was refused.
    """
    transport = {
        "tls_no_verify": settings.tls_no_verify,
        "timeout": settings.timeout,
        "proxy": settings.proxy,
        "ca_bundle": settings.ca_bundle,
    }
    if settings.token:
        if not settings.api_url:
            raise ConfigError("A token was given but neither base_url nor subdomain is set")
        return ShareFileClient(settings.api_url, token=settings.token, **transport)

    if settings.has_password_grant:
        if not settings.token_url:
            raise ConfigError("Password grant needs auth_url or subdomain")
        return ShareFileClient.authenticate(
            settings.token_url,
            settings.client_id,
            settings.client_secret,
            settings.username,
            settings.password,
            base_url=settings.base_url,
            **transport,
        )

    raise ConfigError(
        "No credentials configured: set token, or client_id, client_secret, "
        "username and password"
    )
