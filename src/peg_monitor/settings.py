"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import tomllib

from dotenv import load_dotenv
from pydantic import (
    Field,
    SecretStr,
    field_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    NoDecode,
    SettingsConfigDict,
)

from .constants import (
    BASE_ASSET_SYMBOLS,
    DEFAULT_PROVIDER_PRIORITY,
    MAINNET_CHAIN_ID,
    TAKER_PLACEHOLDER,
    TRADE_SIZES,
)

load_dotenv()

SECRET_FIELDS = {"zerox_api_key", "collect_secret"}


class SelectionPolicy(str, Enum):
    FALLBACK = "fallback"
    BEST_OF = "best_of"


class PegMonitorSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with PEG_MONITOR_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- aggregation defaults ---
    base_asset: str = "USDT"
    trade_size: str = "1M"
    selection_policy: SelectionPolicy = SelectionPolicy.BEST_OF
    providers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_PROVIDER_PRIORITY),
        description="Quote providers in priority order.",
    )
    max_concurrent_assets: int = Field(default=5, ge=1)

    # --- provider parameters ---
    zerox_api_key: SecretStr | None = None
    chain_id: int = MAINNET_CHAIN_ID
    taker_address: str = TAKER_PLACEHOLDER
    slippage_percent: float = Field(
        default=0.5,
        gt=0,
        lt=50.0,
        description="Slippage tolerance (%) sent to providers that require one.",
    )
    quote_timeout: float = Field(
        default=8.0,
        gt=0,
        le=30.0,
        description="Per-call timeout (seconds) for a single provider quote.",
    )
    provider_request_interval: float = Field(
        default=0.1,
        ge=0,
        description="Minimum delay (seconds) between consecutive requests to one provider.",
    )
    provider_request_jitter: float = Field(default=0.0, ge=0)

    # --- history / collection ---
    database_path: Path = Path("peg-monitor.sqlite")
    collect_secret: SecretStr | None = None
    collect_retries: int = Field(default=2, ge=0)
    collect_retry_interval: float = Field(default=5.0, ge=0)

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PEG_MONITOR_",
        env_file=".env",
        extra="ignore",  # ignore unknown keys in env/config file
    )

    @field_validator("zerox_api_key", "collect_secret", mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @field_validator("base_asset")
    @classmethod
    def validate_base_asset(cls, v: str) -> str:
        if v not in BASE_ASSET_SYMBOLS:
            raise ValueError(
                f"base_asset must be one of {', '.join(BASE_ASSET_SYMBOLS)}, got '{v}'"
            )
        return v

    @field_validator("trade_size")
    @classmethod
    def validate_trade_size(cls, v: str) -> str:
        labels = [size["label"] for size in TRADE_SIZES]
        if v not in labels:
            raise ValueError(
                f"trade_size must be one of {', '.join(labels)}, got '{v}'"
            )
        return v

    @field_validator("providers", mode="before")
    @classmethod
    def split_providers(cls, v: Any) -> Any:
        """Accept a comma separated string (handy for env vars)."""
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()]
        return v

    @field_validator("providers")
    @classmethod
    def validate_providers(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one quote provider must be configured")
        normalized = [name.lower() for name in v]
        if len(set(normalized)) != len(normalized):
            raise ValueError(f"Duplicate quote providers configured: {v}")
        from .adapters import QUOTE_ADAPTERS

        unknown = [name for name in normalized if name not in QUOTE_ADAPTERS]
        if unknown:
            raise ValueError(
                f"Unknown quote provider(s): {', '.join(unknown)}. "
                f"Available providers: {', '.join(QUOTE_ADAPTERS)}"
            )
        return normalized

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get("PEG_MONITOR_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        class TomlConfigSource(PydanticBaseSettingsSource):
            def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
                super().__init__(settings_cls)
                self._path = path

            def get_field_value(
                self, field: Any, field_name: str
            ) -> tuple[Any, str, bool]:
                return None, "", False

            def __call__(self) -> dict[str, Any]:
                if not self._path:
                    # Try default locations
                    local_config = Path("peg-monitor.toml")
                    user_config = (
                        Path.home() / ".config" / "peg-monitor" / "config.toml"
                    )
                    if local_config.exists():
                        self._path = local_config
                    elif user_config.exists():
                        self._path = user_config
                    else:
                        return {}

                if not self._path.exists():
                    return {}

                with self._path.open("rb") as f:
                    data = tomllib.load(f)  # supports top-level or [peg_monitor]
                body = data.get("peg_monitor", data)
                if not isinstance(body, dict):
                    return {}

                for key in SECRET_FIELDS:
                    if key in body:
                        raise ValueError(
                            f"Security violation: '{key}' found in TOML config file. "
                            f"Secrets must only be provided via environment variables or CLI flags."
                        )

                return body

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,  # optional secrets dir
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a JSON-friendly dict with secrets redacted."""
        data = self.model_dump(mode="json")
        for key in SECRET_FIELDS:
            if getattr(self, key):
                data[key] = "***redacted***"
        return data

    @property
    def zerox_api_key_value(self) -> str | None:
        if self.zerox_api_key is None:
            return None
        value = self.zerox_api_key.get_secret_value()
        return value or None
