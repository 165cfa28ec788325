"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .constants import BP_FACTOR
from .period_calendar import PayPeriodDuration

logger = logging.getLogger(__name__)

POLICY_RISK_ADJUSTED = "risk_adjusted"
POLICY_FIXED_SENIOR_YIELD = "fixed_senior_yield"
_POLICIES = (POLICY_RISK_ADJUSTED, POLICY_FIXED_SENIOR_YIELD)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PoolSettings:
    name: str = ""
    tranches_policy: str = POLICY_RISK_ADJUSTED
    # 0 disables the senior:junior leverage guardrail.
    max_senior_junior_ratio: int = 4
    tranches_risk_adjustment_bps: int = 0
    fixed_senior_yield_bps: int = 0
    epoch_period: PayPeriodDuration = PayPeriodDuration.MONTHLY
    # Junior deposit each admin lender must hold before the pool can be enabled.
    min_admin_liquidity: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class FirstLossCoverConfig:
    name: str = ""
    cover_rate_per_loss_bps: int = 0
    cover_cap_per_loss: int = 0
    risk_yield_multiplier_bps: int = 0
    min_liquidity: int = 0


@dataclass(frozen=True)
class KeeperConfig:
    check_interval_minutes: int = 60


@dataclass(frozen=True)
class WebhookConfig:
    enabled: bool = False
    url: str = ""
    timeout: int = 10


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    pool: PoolSettings = field(default_factory=PoolSettings)
    # Priority order: the first cover absorbs loss first.
    first_loss_covers: tuple[FirstLossCoverConfig, ...] = ()
    keeper: KeeperConfig = field(default_factory=KeeperConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_pool(raw: dict[str, Any]) -> PoolSettings:
    return PoolSettings(
        name=raw.get("name", ""),
        tranches_policy=raw.get("tranches_policy", POLICY_RISK_ADJUSTED),
        max_senior_junior_ratio=int(raw.get("max_senior_junior_ratio", 4)),
        tranches_risk_adjustment_bps=int(raw.get("tranches_risk_adjustment_bps", 0)),
        fixed_senior_yield_bps=int(raw.get("fixed_senior_yield_bps", 0)),
        epoch_period=PayPeriodDuration(raw.get("epoch_period", "monthly")),
        min_admin_liquidity={
            k: int(v) for k, v in raw.get("min_admin_liquidity", {}).items()
        },
    )


def _build_first_loss_covers(
    raw: list[dict[str, Any]],
) -> tuple[FirstLossCoverConfig, ...]:
    covers: list[FirstLossCoverConfig] = []
    for c in raw:
        covers.append(
            FirstLossCoverConfig(
                name=c.get("name", ""),
                cover_rate_per_loss_bps=int(c.get("cover_rate_per_loss_bps", 0)),
                cover_cap_per_loss=int(c.get("cover_cap_per_loss", 0)),
                risk_yield_multiplier_bps=int(c.get("risk_yield_multiplier_bps", 0)),
                min_liquidity=int(c.get("min_liquidity", 0)),
            )
        )
    return tuple(covers)


def _build_keeper(raw: dict[str, Any]) -> KeeperConfig:
    return KeeperConfig(
        check_interval_minutes=int(raw.get("check_interval_minutes", 60)),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    wh = raw.get("webhook", {})
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        webhook=WebhookConfig(
            enabled=bool(wh.get("enabled", False)),
            url=wh.get("url", ""),
            timeout=int(wh.get("timeout", 10)),
        ),
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=tg.get("chat_id", ""),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate pool configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        pool=_build_pool(raw.get("pool", {})),
        first_loss_covers=_build_first_loss_covers(raw.get("first_loss_covers", [])),
        keeper=_build_keeper(raw.get("keeper", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    pool = cfg.pool
    if pool.tranches_policy not in _POLICIES:
        raise ValueError(f"Unknown tranches policy '{pool.tranches_policy}'")
    if pool.max_senior_junior_ratio < 0:
        raise ValueError("max_senior_junior_ratio must not be negative")
    if not 0 <= pool.tranches_risk_adjustment_bps <= BP_FACTOR:
        raise ValueError("tranches_risk_adjustment_bps must be within 0..10000")
    if pool.fixed_senior_yield_bps < 0:
        raise ValueError("fixed_senior_yield_bps must not be negative")

    seen: set[str] = set()
    for cover in cfg.first_loss_covers:
        if not cover.name:
            raise ValueError("First loss cover has no name")
        if cover.name in seen:
            raise ValueError(f"Duplicate first loss cover '{cover.name}'")
        seen.add(cover.name)
        if not 0 <= cover.cover_rate_per_loss_bps <= BP_FACTOR:
            raise ValueError(
                f"First loss cover '{cover.name}' has cover rate outside 0..10000"
            )
        if cover.cover_cap_per_loss < 0 or cover.risk_yield_multiplier_bps < 0:
            raise ValueError(f"First loss cover '{cover.name}' has negative settings")

    if cfg.notifications.webhook.enabled and not cfg.notifications.webhook.url:
        raise ValueError("Webhook notifications enabled without a url")
