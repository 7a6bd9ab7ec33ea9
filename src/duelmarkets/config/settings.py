"""TOML config: default.toml plus an optional profile overlay, validated into Settings."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

# Repo-level config/ (next to src/), used when ./config has no default.toml
_PACKAGE_CONFIG_DIR = Path(__file__).resolve().parents[3] / "config"


class StorageSection(BaseModel):
    db_path: str = "data/duel.duckdb"


class MarketSection(BaseModel):
    default_liquidity: float = Field(1000.0, gt=0, description="LMSR b in collateral units")
    default_outcome_count: int = Field(3, ge=2)
    redemption_unit: int = Field(1_000_000, gt=0, description="Payout per winning share, micro-units")
    fee_bps: int = Field(0, ge=0, le=10_000, description="Trade fee, basis points of the LMSR value")


class OracleSection(BaseModel):
    api_base: str = "https://v3.football.api-sports.io"
    api_key_env: str = "API_FOOTBALL_KEY"
    timeout_sec: float = Field(30.0, gt=0)


class LoggingSection(BaseModel):
    level: str = "INFO"
    format: Literal["console", "json"] = "console"


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as f:
        return tomllib.load(f)


def _merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Overlay wins; nested tables merge key by key."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        merged[key] = _merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return merged


def resolve_config_dir(config_dir: Path | None = None) -> Path:
    """Explicit dir, else ./config if it holds default.toml, else the repo config dir."""
    if config_dir is not None:
        return Path(config_dir)
    cwd_config = Path.cwd() / "config"
    if (cwd_config / "default.toml").exists():
        return cwd_config
    return _PACKAGE_CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Raw merged config. A missing default.toml yields {} (all defaults)."""
    directory = resolve_config_dir(config_dir)
    default_path = directory / "default.toml"
    if not default_path.exists():
        return {}
    raw = _read_toml(default_path)
    overlay_path = directory / f"{profile}.toml" if profile else None
    if overlay_path is not None and overlay_path.exists():
        raw = _merge(raw, _read_toml(overlay_path))
    return raw


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Validated Settings; a bad value raises pydantic.ValidationError."""
    return Settings.from_dict(load_config(profile, config_dir))


class Settings(BaseModel):
    """Application settings, one model per TOML table."""

    storage: StorageSection = Field(default_factory=StorageSection)
    market: MarketSection = Field(default_factory=MarketSection)
    oracle: OracleSection = Field(default_factory=OracleSection)
    logging: LoggingSection = Field(default_factory=LoggingSection)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls.model_validate(raw)

    @property
    def db_path(self) -> str:
        return self.storage.db_path

    @property
    def default_liquidity(self) -> float:
        return self.market.default_liquidity

    @property
    def default_outcome_count(self) -> int:
        return self.market.default_outcome_count

    @property
    def redemption_unit(self) -> int:
        return self.market.redemption_unit

    @property
    def fee_bps(self) -> int:
        return self.market.fee_bps

    @property
    def oracle_api_base(self) -> str:
        return self.oracle.api_base

    @property
    def oracle_api_key(self) -> str:
        """Read at access time from the env var named by oracle.api_key_env; never stored in TOML."""
        return os.environ.get(self.oracle.api_key_env, "")

    @property
    def oracle_timeout_sec(self) -> float:
        return self.oracle.timeout_sec

    @property
    def logging_level(self) -> str:
        return self.logging.level.upper()

    @property
    def logging_format(self) -> str:
        return self.logging.format

    @property
    def logging_level_num(self) -> int:
        level = logging.getLevelName(self.logging_level)
        return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Settings) -> None:
    """Set up structlog once per process: level filter plus console or JSON rendering."""
    import structlog

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.logging_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.processors.StackInfoRenderer(), structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
