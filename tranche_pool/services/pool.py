"""Tranched pool — the async entry point wrapping waterfall, redemptions and settlement."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime
from functools import partial

from ..config import AppConfig, PoolSettings
from ..errors import (
    InsufficientFirstLossCover,
    InsufficientLiquidity,
    PoolClosed,
    PoolNotClosed,
    PoolNotEnabled,
    RatioExceeded,
    Unauthorized,
    ZeroAmount,
)
from ..events import EventLog
from ..interfaces.liquidity import LiquiditySource
from ..interfaces.notifier import Notifier
from ..interfaces.tranches_policy import TranchesPolicy
from ..models import (
    Caller,
    EpochState,
    FirstLossCover,
    LossDistribution,
    ProfitDistribution,
    RecoveryDistribution,
    RedemptionSummary,
    Tranche,
    TrancheFulfillment,
)
from ..notifications import TelegramNotifier, WebhookNotifier
from ..period_calendar import Calendar
from ..redemption import RedemptionLedger, TrancheVault
from ..settlement import EpochManager
from ..waterfall import WaterfallDistributor, build_policy

logger = logging.getLogger(__name__)

_ADMIN_CALLERS = frozenset({Caller.POOL_OWNER, Caller.POOL_OPERATOR})


class TranchedPool:
    """Senior/junior lending pool.

    Every state-changing operation runs under one lock: checks first, then
    bookkeeping, then token movements through the liquidity source. Events
    collected during the operation are pushed to the notifiers once the lock
    is released.
    """

    def __init__(
        self,
        settings: PoolSettings,
        policy: TranchesPolicy,
        liquidity: LiquiditySource,
        covers: Sequence[FirstLossCover] = (),
        calendar: Calendar | None = None,
        notifiers: Sequence[Notifier] = (),
    ) -> None:
        self._settings = settings
        self._liquidity = liquidity
        self._calendar = calendar or Calendar()
        self._notifiers: list[Notifier] = list(notifiers)
        self._lock = asyncio.Lock()
        self.enabled = False

        self.events = EventLog()
        self.distributor = WaterfallDistributor(policy, covers, self.events)
        self.vaults = {
            t: TrancheVault(t, partial(self.distributor.tranche_total_assets, t))
            for t in Tranche
        }
        self.ledgers = {t: RedemptionLedger(t) for t in Tranche}
        self.epochs = EpochManager(
            self.distributor,
            self.vaults,
            self.ledgers,
            liquidity,
            self._calendar,
            period=settings.epoch_period,
            max_senior_junior_ratio=settings.max_senior_junior_ratio,
            events=self.events,
        )

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        liquidity: LiquiditySource,
        calendar: Calendar | None = None,
    ) -> TranchedPool:
        """Build a pool, its covers and its notifiers from loaded configuration."""
        covers = [
            FirstLossCover(
                name=c.name,
                cover_cap_per_loss=c.cover_cap_per_loss,
                cover_rate_per_loss_bps=c.cover_rate_per_loss_bps,
                risk_yield_multiplier_bps=c.risk_yield_multiplier_bps,
                min_liquidity=c.min_liquidity,
            )
            for c in config.first_loss_covers
        ]

        notifiers: list[Notifier] = []
        if config.notifications.webhook.enabled:
            notifiers.append(WebhookNotifier(config.notifications.webhook))
        if config.notifications.telegram.enabled:
            notifiers.append(TelegramNotifier(config.notifications.telegram))

        return cls(
            config.pool,
            build_policy(config.pool),
            liquidity,
            covers=covers,
            calendar=calendar,
            notifiers=notifiers,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def settings(self) -> PoolSettings:
        return self._settings

    @property
    def closed(self) -> bool:
        return self.epochs.state is EpochState.CLOSED

    @property
    def current_epoch_id(self) -> int:
        return self.epochs.current_epoch_id

    def tranche_total_assets(self, tranche: Tranche) -> int:
        return self.distributor.tranche_total_assets(tranche)

    def total_assets(self) -> int:
        return self.distributor.total_assets()

    def redemption_summary(
        self, tranche: Tranche, epoch_id: int | None = None
    ) -> RedemptionSummary:
        return self.ledgers[tranche].summary(
            self.current_epoch_id if epoch_id is None else epoch_id
        )

    def withdrawable_assets(self, lender: str, tranche: Tranche) -> int:
        return self.ledgers[tranche].withdrawable_assets(lender, self.current_epoch_id)

    def is_epoch_due(self, now: datetime | None = None) -> bool:
        return self.enabled and self.epochs.is_due(now or self._calendar.now())

    def has_unprocessed_profit(self, tranche: Tranche) -> bool:
        return self.vaults[tranche].has_unprocessed_profit()

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self) -> None:
        for event in self.events.drain():
            for notifier in self._notifiers:
                try:
                    await notifier.send_event(event)
                except Exception as e:
                    logger.error("Notifier send_event failed for %s: %s", event.name, e)

    def _check_open(self) -> None:
        if self.closed:
            raise PoolClosed("Pool is closed")
        if not self.enabled:
            raise PoolNotEnabled("Pool is not enabled")

    # ------------------------------------------------------------------
    # Pool lifecycle
    # ------------------------------------------------------------------

    async def enable_pool(self, caller: Caller, now: datetime | None = None) -> None:
        """Check cover and admin liquidity minimums, then start the first epoch."""
        async with self._lock:
            if caller not in _ADMIN_CALLERS:
                raise Unauthorized(f"{caller.value} cannot enable the pool")
            if self.closed:
                raise PoolClosed("Pool is closed")
            if self.enabled:
                return

            for cover in self.distributor.covers:
                if cover.total_assets < cover.min_liquidity:
                    raise InsufficientFirstLossCover(
                        f"Cover '{cover.name}' holds {cover.total_assets}, "
                        f"needs {cover.min_liquidity}"
                    )
            junior = self.vaults[Tranche.JUNIOR]
            for lender, minimum in self._settings.min_admin_liquidity.items():
                held = junior.total_assets_of(lender)
                if held < minimum:
                    raise InsufficientLiquidity(
                        f"Admin lender {lender} holds {held} junior, needs {minimum}"
                    )

            self.enabled = True
            epoch = self.epochs.start_new_epoch(now)
            self.events.emit("PoolEnabled", epoch_id=epoch.id)
            logger.info("Pool '%s' enabled", self._settings.name)
        await self._dispatch()

    async def close_pool(
        self, caller: Caller, now: datetime | None = None
    ) -> tuple[TrancheFulfillment, TrancheFulfillment]:
        """Settle outstanding redemptions without the ratio cap and close for good."""
        async with self._lock:
            if caller is not Caller.POOL_OWNER:
                raise Unauthorized(f"{caller.value} cannot close the pool")
            self._check_open()
            result = await self.epochs.close_epoch(now, final=True)
            self.events.emit(
                "PoolClosed",
                epoch_id=self.current_epoch_id - 1,
                senior_total_assets=self.tranche_total_assets(Tranche.SENIOR),
                junior_total_assets=self.tranche_total_assets(Tranche.JUNIOR),
            )
            logger.info("Pool '%s' closed", self._settings.name)
        await self._dispatch()
        return result

    # ------------------------------------------------------------------
    # Credit events
    # ------------------------------------------------------------------

    async def distribute_profit(
        self, caller: Caller, profit: int, now: datetime | None = None
    ) -> ProfitDistribution:
        async with self._lock:
            self._check_open()
            today = (now or self._calendar.now()).date()
            result = self.distributor.distribute_profit(caller, profit, today)
            self.vaults[Tranche.SENIOR].record_profit(result.senior_profit)
            self.vaults[Tranche.JUNIOR].record_profit(result.junior_profit)

            for cover, amount in zip(self.distributor.covers, result.cover_profits):
                if amount:
                    await self._liquidity.withdraw(cover.name, amount)
        await self._dispatch()
        return result

    async def distribute_loss(
        self, caller: Caller, loss: int, now: datetime | None = None
    ) -> LossDistribution:
        async with self._lock:
            self._check_open()
            today = (now or self._calendar.now()).date()
            result = self.distributor.distribute_loss(caller, loss, today)

            for cover, amount in zip(self.distributor.covers, result.cover_losses):
                if amount:
                    await self._liquidity.deposit(cover.name, amount)
        await self._dispatch()
        return result

    async def distribute_loss_recovery(
        self, caller: Caller, recovery: int, now: datetime | None = None
    ) -> RecoveryDistribution:
        async with self._lock:
            self._check_open()
            today = (now or self._calendar.now()).date()
            result = self.distributor.distribute_loss_recovery(caller, recovery, today)

            for cover, amount in zip(self.distributor.covers, result.cover_recoveries):
                if amount:
                    await self._liquidity.withdraw(cover.name, amount)
        await self._dispatch()
        return result

    # ------------------------------------------------------------------
    # Lender and cover capital
    # ------------------------------------------------------------------

    async def deposit(
        self,
        lender: str,
        tranche: Tranche,
        amount: int,
        reinvest_yield: bool | None = None,
        now: datetime | None = None,
    ) -> int:
        """Deposit into a tranche; returns the shares minted.

        Admin lenders may deposit before the pool is enabled.
        """
        async with self._lock:
            if self.closed:
                raise PoolClosed("Pool is closed")
            if not self.enabled and lender not in self._settings.min_admin_liquidity:
                raise PoolNotEnabled("Pool is not enabled")
            if amount <= 0:
                raise ZeroAmount("Deposit amount must be positive")

            ratio = self._settings.max_senior_junior_ratio
            if tranche is Tranche.SENIOR and ratio > 0:
                senior_after = self.tranche_total_assets(Tranche.SENIOR) + amount
                junior = self.tranche_total_assets(Tranche.JUNIOR)
                if senior_after > junior * ratio:
                    raise RatioExceeded(
                        f"Senior {senior_after} would exceed {ratio}x junior {junior}"
                    )

            today = (now or self._calendar.now()).date()
            vault = self.vaults[tranche]
            shares = vault.mint(lender, amount)
            if reinvest_yield is not None:
                vault.set_reinvest_yield(lender, reinvest_yield)
            self.distributor.add_tranche_assets(tranche, amount, today)
            self.events.emit(
                "LiquidityDeposited",
                lender=lender,
                tranche=tranche.name.lower(),
                amount=amount,
                shares=shares,
            )

            await self._liquidity.deposit(lender, amount)
        await self._dispatch()
        return shares

    async def deposit_cover(self, name: str, depositor: str, amount: int) -> FirstLossCover:
        """Add capital to a first loss cover; the cover holds its own funds."""
        async with self._lock:
            if self.closed:
                raise PoolClosed("Pool is closed")
            if amount <= 0:
                raise ZeroAmount("Cover deposit must be positive")
            cover = self.distributor.add_cover_assets(name, amount)
            self.events.emit(
                "CoverDeposited",
                cover=name,
                depositor=depositor,
                amount=amount,
                total_assets=cover.total_assets,
            )
        await self._dispatch()
        return cover

    async def set_reinvest_yield(self, lender: str, tranche: Tranche, reinvest: bool) -> None:
        async with self._lock:
            self.vaults[tranche].set_reinvest_yield(lender, reinvest)
            self.events.emit(
                "YieldReinvestmentSet",
                lender=lender,
                tranche=tranche.name.lower(),
                reinvest=reinvest,
            )
        await self._dispatch()

    async def process_yield_for_lenders(
        self, tranche: Tranche, now: datetime | None = None
    ) -> dict[str, int]:
        """Pay accumulated yield to lenders who do not reinvest it."""
        async with self._lock:
            self._check_open()
            today = (now or self._calendar.now()).date()
            payouts = self.vaults[tranche].take_yield()
            total = sum(payouts.values())
            if total:
                self.distributor.remove_tranche_assets(tranche, total, today)
            self.events.emit(
                "YieldPaidOut",
                tranche=tranche.name.lower(),
                payouts=dict(payouts),
            )

            for lender, amount in payouts.items():
                await self._liquidity.withdraw(lender, amount)
        await self._dispatch()
        return payouts

    # ------------------------------------------------------------------
    # Redemptions
    # ------------------------------------------------------------------

    async def add_redemption_request(self, lender: str, tranche: Tranche, shares: int) -> None:
        async with self._lock:
            self._check_open()
            vault = self.vaults[tranche]
            vault.check_redeemable(lender, shares)

            epoch_id = self.current_epoch_id
            principal = vault.hold_for_redemption(lender, shares)
            self.ledgers[tranche].add_request(lender, shares, principal, epoch_id)
            self.events.emit(
                "RedemptionRequestAdded",
                lender=lender,
                tranche=tranche.name.lower(),
                epoch_id=epoch_id,
                shares=shares,
            )
        await self._dispatch()

    async def cancel_redemption_request(
        self, lender: str, tranche: Tranche, shares: int
    ) -> None:
        async with self._lock:
            self._check_open()
            epoch_id = self.current_epoch_id
            principal = self.ledgers[tranche].cancel_request(lender, shares, epoch_id)
            self.vaults[tranche].release_from_redemption(lender, shares, principal)
            self.events.emit(
                "RedemptionRequestRemoved",
                lender=lender,
                tranche=tranche.name.lower(),
                epoch_id=epoch_id,
                shares=shares,
            )
        await self._dispatch()

    async def close_epoch(
        self, now: datetime | None = None
    ) -> tuple[TrancheFulfillment, TrancheFulfillment]:
        async with self._lock:
            self._check_open()
            result = await self.epochs.close_epoch(now)
        await self._dispatch()
        return result

    async def disburse(self, lender: str, tranche: Tranche) -> int:
        """Pay out everything processed for the lender and not yet withdrawn."""
        async with self._lock:
            amount = self.ledgers[tranche].mark_withdrawn(lender, self.current_epoch_id)
            if amount:
                self.events.emit(
                    "LenderFundDisbursed",
                    lender=lender,
                    tranche=tranche.name.lower(),
                    amount=amount,
                )
                await self._liquidity.release(lender, amount)
        await self._dispatch()
        return amount

    async def withdraw_after_pool_closure(self, lender: str, tranche: Tranche) -> int:
        """Redeem every remaining share at the current price plus processed redemptions.

        Shares still queued for redemption when the pool closed are redeemed
        here too, since no later epoch will process them.
        """
        async with self._lock:
            if not self.closed:
                raise PoolNotClosed("Pool must be closed before withdrawing")

            vault = self.vaults[tranche]
            ledger = self.ledgers[tranche]
            epoch_id = self.current_epoch_id
            queued = ledger.cancellable_shares(lender, epoch_id)
            shares = vault.balance_of(lender) + queued
            amount = vault.convert_to_assets(shares)
            available = await self._liquidity.available_liquidity()
            if amount > available:
                raise InsufficientLiquidity(
                    f"Withdrawal of {amount} exceeds available liquidity {available}"
                )

            processed = ledger.mark_withdrawn(lender, epoch_id)
            if queued:
                principal = ledger.cancel_request(lender, queued, epoch_id)
                vault.release_from_redemption(lender, queued, principal)
            if shares:
                vault.burn(lender, shares)
                self.distributor.remove_tranche_assets(
                    tranche, amount, self._calendar.today()
                )
            self.events.emit(
                "LenderFundWithdrawn",
                lender=lender,
                tranche=tranche.name.lower(),
                shares=shares,
                amount=amount + processed,
            )

            if processed:
                await self._liquidity.release(lender, processed)
            if amount:
                await self._liquidity.withdraw(lender, amount)
        await self._dispatch()
        return amount + processed
