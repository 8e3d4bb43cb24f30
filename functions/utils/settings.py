"""
functions/utils/settings.py

Runtime configuration of the GitHub REST plugin.

Sources, later ones override earlier ones:

    parameters/parameters.yaml      shipped defaults
    GITHUB_PLUGIN_<FIELD> env vars   deployment overrides (Helm values, etc.)

get_settings() merges both, refuses to start without an upstream base URL,
and caches the result for the life of the process. Import it instead of
building Settings() directly: a bare Settings() only sees the environment.

enable_invitation_fallback_on_get switches GET collaborator permission from
"404 when not a collaborator" to "200 with an invitation-shaped body when an
invitation is pending". Off by default.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import AnyHttpUrl, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

PARAMETERS_PATH = Path(__file__).resolve().parents[2] / "parameters" / "parameters.yaml"

DEFAULT_GITHUB_API_BASE_URL = "https://api.github.com"
TEAM_REPO_MEDIA_TYPE = "application/vnd.github.v3.repository+json"


class Settings(BaseSettings):
    """Every tunable of the plugin. Field names match the YAML keys."""

    model_config = SettingsConfigDict(
        env_prefix="GITHUB_PLUGIN_",
        extra="ignore",
    )

    # Identity reported by probes and logs
    service_name: str = "github-rest-plugin"
    environment: str = "local"
    port: int = 8080

    # Logging
    log_level: str = "INFO"
    debug: bool = False
    log_json: bool = False
    no_color: bool = False

    # Upstream
    # None here so an env-only Settings() can load; get_settings() requires it
    github_api_base_url: Optional[AnyHttpUrl] = None

    http_timeout_seconds: float = 50.0
    readiness_timeout_seconds: float = 5.0

    invitations_per_page: int = Field(default=30, ge=1, le=100)

    # GitHub answers an empty 200 on the team-repository endpoint
    # unless this media type is requested.
    team_repo_accept_header: str = TEAM_REPO_MEDIA_TYPE

    enable_invitation_fallback_on_get: bool = Field(
        default=False,
        description=(
            "If true, GET collaborator permission answers 200 with a synthesized "
            "invitation-shaped body when the user has a pending invitation."
        ),
    )

    @property
    def github_base_url(self) -> str:
        return str(self.github_api_base_url or DEFAULT_GITHUB_API_BASE_URL).rstrip("/")


@lru_cache(maxsize=1)
def _load_yaml_parameters() -> Dict[str, Any]:
    # an unreadable file degrades to "no defaults"; get_settings() reports what is missing
    try:
        raw = PARAMETERS_PATH.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("parameters_file_missing", path=str(PARAMETERS_PATH))
        return {}
    except OSError as exc:
        logger.error("parameters_file_unreadable", path=str(PARAMETERS_PATH), error=str(exc))
        return {}

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        logger.error("parameters_file_invalid_yaml", path=str(PARAMETERS_PATH), error=str(exc))
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("parameters_file_not_mapping", path=str(PARAMETERS_PATH), type=type(data).__name__)
        return {}

    logger.debug("parameters_file_loaded", path=str(PARAMETERS_PATH), keys=sorted(data))
    return data


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """YAML defaults overridden by GITHUB_PLUGIN_* variables, validated once."""
    yaml_data = _load_yaml_parameters()

    # only the variables actually set, so YAML keeps the rest
    try:
        env_data = Settings().model_dump(exclude_unset=True)
    except ValidationError as exc:
        # one malformed variable discards all env overrides; YAML still applies
        logger.warning("settings_env_invalid", errors=exc.errors())
        env_data = {}

    merged: Dict[str, Any] = {**yaml_data, **env_data}

    if not merged.get("github_api_base_url"):
        logger.error("settings_missing_github_api_base_url", yaml_path=str(PARAMETERS_PATH))
        raise RuntimeError(
            "github_api_base_url is not configured: set GITHUB_PLUGIN_GITHUB_API_BASE_URL "
            f"or add it to {PARAMETERS_PATH}"
        )

    settings = Settings.model_validate(merged)

    logger.info(
        "settings_loaded",
        environment=settings.environment,
        service_name=settings.service_name,
        github_api_base_url=settings.github_base_url,
        env_overrides=sorted(env_data),
        invitations_per_page=settings.invitations_per_page,
        enable_invitation_fallback_on_get=settings.enable_invitation_fallback_on_get,
    )

    return settings
