"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from datetime import datetime, timezone
from pathlib import Path

import pytest

from tranche_pool.config import POLICY_RISK_ADJUSTED, PoolSettings
from tranche_pool.liquidity import PoolSafe
from tranche_pool.models import FirstLossCover
from tranche_pool.period_calendar import Calendar
from tranche_pool.services import TranchedPool
from tranche_pool.waterfall import RiskAdjustedTranchesPolicy


class FixedClock:
    """Settable clock for Calendar injection."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ---------------------------------------------------------------------------
# Clock fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def calendar(clock: FixedClock) -> Calendar:
    return Calendar(clock)


# ---------------------------------------------------------------------------
# Pool fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_settings() -> PoolSettings:
    return PoolSettings(
        name="test-pool",
        tranches_policy=POLICY_RISK_ADJUSTED,
        max_senior_junior_ratio=4,
        tranches_risk_adjustment_bps=2000,
    )


@pytest.fixture()
def sample_covers() -> tuple[FirstLossCover, ...]:
    return (
        FirstLossCover(
            name="borrower",
            cover_rate_per_loss_bps=10_000,
            cover_cap_per_loss=1_000_000,
            risk_yield_multiplier_bps=0,
            min_liquidity=100_000,
        ),
        FirstLossCover(
            name="admin",
            cover_rate_per_loss_bps=10_000,
            cover_cap_per_loss=1_000_000,
            risk_yield_multiplier_bps=20_000,
        ),
    )


@pytest.fixture()
def pool_safe() -> PoolSafe:
    return PoolSafe()


@pytest.fixture()
def pool(
    sample_settings: PoolSettings, pool_safe: PoolSafe, calendar: Calendar
) -> TranchedPool:
    """Risk-adjusted pool without first loss covers."""
    return TranchedPool(
        sample_settings,
        RiskAdjustedTranchesPolicy(sample_settings.tranches_risk_adjustment_bps),
        pool_safe,
        calendar=calendar,
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    pool:
      name: test-pool
      tranches_policy: fixed_senior_yield
      max_senior_junior_ratio: 5
      fixed_senior_yield_bps: 800
      epoch_period: quarterly
      min_admin_liquidity:
        treasury: 1000
    first_loss_covers:
      - name: borrower
        cover_rate_per_loss_bps: 10000
        cover_cap_per_loss: 500000
        min_liquidity: 100000
      - name: admin
        cover_rate_per_loss_bps: 5000
        cover_cap_per_loss: 250000
        risk_yield_multiplier_bps: 15000
    keeper:
      check_interval_minutes: 30
    notifications:
      webhook:
        enabled: true
        url: "https://indexer.example.com/events"
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
