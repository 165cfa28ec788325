"""Tranche vault — share accounting for one tranche.

Tranche assets live in the waterfall distributor; the vault only tracks who
owns which slice of them. Shares held for pending redemption requests stay
in ``total_supply`` (they still bear profit and loss) until the epoch that
fulfills them burns them.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from ..errors import InsufficientShares, ZeroAmount
from ..models import DepositRecord, Tranche

logger = logging.getLogger(__name__)


class TrancheVault:
    def __init__(self, tranche: Tranche, total_assets: Callable[[], int]) -> None:
        self.tranche = tranche
        self._total_assets = total_assets
        self.balances: dict[str, int] = {}
        self.deposits: dict[str, DepositRecord] = {}
        self.total_supply = 0
        # Shares moved out of lender balances by redemption requests.
        self.redemption_shares = 0
        # Profit owed to non-reinvesting lenders and not yet paid out.
        self.unprocessed_profit = 0

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def total_assets(self) -> int:
        return self._total_assets()

    def convert_to_shares(self, assets: int) -> int:
        total_assets = self.total_assets()
        if self.total_supply == 0 or total_assets == 0:
            return assets
        return assets * self.total_supply // total_assets

    def convert_to_assets(self, shares: int) -> int:
        if self.total_supply == 0:
            return shares
        return shares * self.total_assets() // self.total_supply

    def balance_of(self, lender: str) -> int:
        return self.balances.get(lender, 0)

    def total_assets_of(self, lender: str) -> int:
        return self.convert_to_assets(self.balance_of(lender))

    def deposit_record(self, lender: str) -> DepositRecord:
        return self.deposits.get(lender) or DepositRecord()

    @property
    def lenders(self) -> list[str]:
        return [lender for lender, shares in self.balances.items() if shares > 0]

    # ------------------------------------------------------------------
    # Share movements
    # ------------------------------------------------------------------

    def mint(self, lender: str, amount: int) -> int:
        """Mint shares for ``amount`` deposited; call before the assets are added."""
        if amount <= 0:
            raise ZeroAmount("Deposit amount must be positive")
        shares = self.convert_to_shares(amount)
        if shares == 0:
            raise ZeroAmount(f"Deposit of {amount} is worth zero shares")

        self.balances[lender] = self.balance_of(lender) + shares
        self.total_supply += shares
        record = self.deposit_record(lender)
        self.deposits[lender] = replace(record, principal=record.principal + amount)
        return shares

    def check_redeemable(self, lender: str, shares: int) -> None:
        if shares <= 0:
            raise ZeroAmount("Share count must be positive")
        balance = self.balance_of(lender)
        if shares > balance:
            raise InsufficientShares(
                f"{lender} holds {balance} {self.tranche.name.lower()} shares, "
                f"cannot redeem {shares}"
            )

    def hold_for_redemption(self, lender: str, shares: int) -> int:
        """Move lender shares into the vault; returns the principal that moves with them."""
        self.check_redeemable(lender, shares)
        balance = self.balance_of(lender)
        record = self.deposit_record(lender)
        principal = record.principal * shares // balance

        self.balances[lender] = balance - shares
        self.redemption_shares += shares
        self.deposits[lender] = replace(record, principal=record.principal - principal)
        return principal

    def release_from_redemption(self, lender: str, shares: int, principal: int) -> None:
        """Hand cancelled shares and their principal back to the lender."""
        self.redemption_shares -= shares
        self.balances[lender] = self.balance_of(lender) + shares
        record = self.deposit_record(lender)
        self.deposits[lender] = replace(record, principal=record.principal + principal)

    def burn_redemption_shares(self, shares: int) -> None:
        if shares > self.redemption_shares:
            raise ValueError(
                f"Cannot burn {shares} shares; vault holds {self.redemption_shares}"
            )
        self.redemption_shares -= shares
        self.total_supply -= shares

    def burn(self, lender: str, shares: int) -> None:
        """Burn shares straight out of a lender balance."""
        self.check_redeemable(lender, shares)
        balance = self.balance_of(lender)
        record = self.deposit_record(lender)
        self.balances[lender] = balance - shares
        self.total_supply -= shares
        self.deposits[lender] = replace(
            record, principal=record.principal - record.principal * shares // balance
        )

    # ------------------------------------------------------------------
    # Yield for lenders who do not reinvest
    # ------------------------------------------------------------------

    def set_reinvest_yield(self, lender: str, reinvest: bool) -> None:
        self.deposits[lender] = replace(self.deposit_record(lender), reinvest_yield=reinvest)

    def has_non_reinvesting_lenders(self) -> bool:
        return any(
            not self.deposit_record(lender).reinvest_yield for lender in self.lenders
        )

    def record_profit(self, profit: int) -> None:
        if profit > 0 and self.has_non_reinvesting_lenders():
            self.unprocessed_profit += profit

    def has_unprocessed_profit(self) -> bool:
        return self.unprocessed_profit > 0

    def take_yield(self) -> dict[str, int]:
        """Burn each non-reinvesting lender's gain above principal.

        Returns the amount owed per lender; the caller removes the total from
        tranche assets and pays it out. The unprocessed profit counter is
        cleared.
        """
        # Price every lender off the same snapshot before any burn.
        owed: dict[str, tuple[int, int]] = {}
        for lender in self.lenders:
            record = self.deposit_record(lender)
            if record.reinvest_yield:
                continue
            assets = self.total_assets_of(lender)
            if assets <= record.principal:
                continue
            gain = assets - record.principal
            shares = min(self.convert_to_shares(gain), self.balance_of(lender))
            if shares:
                owed[lender] = (shares, gain)

        payouts: dict[str, int] = {}
        for lender, (shares, gain) in owed.items():
            self.balances[lender] -= shares
            self.total_supply -= shares
            payouts[lender] = gain

        if payouts:
            logger.info(
                "%s yield paid to %d lenders: %d",
                self.tranche.name.lower(),
                len(payouts),
                sum(payouts.values()),
            )
        self.unprocessed_profit = 0
        return payouts
