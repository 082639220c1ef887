import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from functools import lru_cache, partial
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from notifications.dispatch import (
    cashout_message,
    crash_message,
    expired_message,
    get_notifier,
)
from wallets.services import credit, debit_if_sufficient, ledger_atomic

from .exceptions import FraudDetected, InvalidAmount, InvalidWager
from .models import MAX_RECORDED_MULTIPLIER, Wager
from .oracle import MultiplierOracle, elapsed_seconds, get_oracle, q6

logger = logging.getLogger(__name__)

D1 = Decimal("1")


@dataclass(frozen=True)
class PlacedWager:
    wager: Wager
    new_balance: int


@dataclass(frozen=True)
class CashOutResult:
    wager_id: uuid.UUID
    winnings: int
    final_multiplier: Decimal
    new_balance: int


@dataclass(frozen=True)
class MultiplierPreview:
    wager_id: uuid.UUID
    status: str
    bet_amount: int
    elapsed: Decimal
    multiplier: Optional[Decimal]


class SettlementEngine:
    """
    Places and settles crash wagers.

    ACTIVE -> PAID | LOST | FRAUD, each terminal. Every balance mutation and
    every status change goes through a conditional UPDATE, so duplicate or
    concurrent requests for the same wager settle it at most once.
    """

    def __init__(
        self,
        oracle: MultiplierOracle,
        tolerance,
        max_multiplier,
        min_bet: int = 1,
        max_bet: Optional[int] = None,
        notifier=None,
        clock=timezone.now,
    ):
        self.oracle = oracle
        self.tolerance = Decimal(str(tolerance))
        self.max_multiplier = Decimal(str(max_multiplier))
        self.min_bet = max(1, int(min_bet))
        self.max_bet = max_bet
        self.notifier = notifier
        self.clock = clock

        if self.tolerance < 0:
            raise ValueError("Fraud tolerance must be non-negative")
        if self.max_multiplier < D1:
            raise ValueError("Multiplier cap must be at least 1")

    @classmethod
    def from_settings(cls):
        return cls(
            oracle=get_oracle(),
            tolerance=settings.CRASH_FRAUD_TOLERANCE,
            max_multiplier=settings.CRASH_MAX_MULTIPLIER,
            min_bet=settings.CRASH_MIN_BET,
            max_bet=settings.CRASH_MAX_BET,
            notifier=get_notifier(),
        )

    # ------------------------------------------------------------------
    # validation
    # ------------------------------------------------------------------
    def _validate_bet(self, bet_amount) -> int:
        if isinstance(bet_amount, bool) or not isinstance(bet_amount, int):
            raise InvalidAmount("Invalid bet amount.")
        if bet_amount <= 0:
            raise InvalidAmount("Invalid bet amount.")
        if bet_amount < self.min_bet:
            raise InvalidAmount(f"Minimum bet is {self.min_bet}.")
        if self.max_bet is not None and bet_amount > self.max_bet:
            raise InvalidAmount(f"Maximum bet is {self.max_bet}.")
        return bet_amount

    def _parse_multiplier(self, claimed) -> Decimal:
        if isinstance(claimed, bool):
            raise InvalidAmount("Invalid multiplier.")
        try:
            value = Decimal(str(claimed))
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidAmount("Invalid multiplier.")
        if not value.is_finite() or value < D1:
            raise InvalidAmount("Invalid multiplier.")
        return value

    def _owned_wager(self, account, wager_id) -> Wager:
        try:
            pk = wager_id if isinstance(wager_id, uuid.UUID) else uuid.UUID(str(wager_id))
        except (TypeError, ValueError, AttributeError):
            raise InvalidWager()
        wager = Wager.objects.owned_by(account).filter(pk=pk).first()
        if wager is None:
            raise InvalidWager()
        return wager

    # ------------------------------------------------------------------
    # multiplier / fraud
    # ------------------------------------------------------------------
    def expected_multiplier(self, start_time, now) -> Decimal:
        return self.oracle(elapsed_seconds(now - start_time))

    def fraud_threshold(self, expected: Decimal) -> Decimal:
        return expected * (D1 + self.tolerance)

    def is_fraudulent(self, claimed: Decimal, expected: Decimal) -> bool:
        return claimed > self.fraud_threshold(expected)

    def payout_for(self, bet_amount: int, multiplier: Decimal) -> int:
        # minor units, rounded toward the house
        return int((Decimal(bet_amount) * multiplier).to_integral_value(rounding=ROUND_DOWN))

    def _notify_on_commit(self, user_id, text):
        if self.notifier is None:
            return
        transaction.on_commit(partial(self.notifier.notify, user_id, text), robust=True)

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    def place_wager(self, account, bet_amount) -> PlacedWager:
        bet_amount = self._validate_bet(bet_amount)
        wager_id = uuid.uuid4()

        with ledger_atomic():
            new_balance = debit_if_sufficient(
                account,
                bet_amount,
                reference=f"crash:{wager_id}:bet",
                meta={"reason": "crash_bet", "wager_id": str(wager_id)},
            )
            # clock starts once the stake is actually held
            wager = Wager.objects.create(
                id=wager_id,
                account=account,
                bet_amount=bet_amount,
                status=Wager.ACTIVE,
                start_time=self.clock(),
            )

        logger.info(
            "Wager %s placed by %s: bet=%s balance=%s",
            wager.id, account.user_id, bet_amount, new_balance,
        )
        return PlacedWager(wager=wager, new_balance=new_balance)

    def cash_out(self, account, wager_id, claimed_multiplier, now=None) -> CashOutResult:
        claimed = self._parse_multiplier(claimed_multiplier)
        wager = self._owned_wager(account, wager_id)
        if wager.status != Wager.ACTIVE:
            raise InvalidWager()

        now = now or self.clock()
        expected = self.expected_multiplier(wager.start_time, now)

        if self.is_fraudulent(claimed, expected):
            with ledger_atomic():
                voided = Wager.objects.transition(
                    wager.pk,
                    Wager.ACTIVE,
                    Wager.FRAUD,
                    account=account,
                    final_multiplier=q6(min(claimed, MAX_RECORDED_MULTIPLIER)),
                    settled_at=now,
                )
            if not voided:
                raise InvalidWager()
            logger.warning(
                "Fraud on wager %s by %s: claimed=%s expected=%s tolerance=%s",
                wager.pk, account.user_id, claimed, expected, self.tolerance,
            )
            raise FraudDetected()

        multiplier = q6(min(claimed, self.max_multiplier))
        winnings = self.payout_for(wager.bet_amount, multiplier)

        with ledger_atomic():
            paid = Wager.objects.transition(
                wager.pk,
                Wager.ACTIVE,
                Wager.PAID,
                account=account,
                final_multiplier=multiplier,
                payout=winnings,
                settled_at=now,
            )
            if not paid:
                raise InvalidWager()

            new_balance = credit(
                account,
                winnings,
                reference=f"crash:{wager.pk}:cashout",
                meta={"reason": "crash_cashout", "wager_id": str(wager.pk), "multiplier": str(multiplier)},
            )
            self._notify_on_commit(account.user_id, cashout_message(multiplier, winnings))

        logger.info(
            "Wager %s paid to %s: multiplier=%s winnings=%s balance=%s",
            wager.pk, account.user_id, multiplier, winnings, new_balance,
        )
        return CashOutResult(
            wager_id=wager.pk,
            winnings=winnings,
            final_multiplier=multiplier,
            new_balance=new_balance,
        )

    def crash(self, account, wager_id, now=None) -> Wager:
        wager = self._owned_wager(account, wager_id)
        now = now or self.clock()

        with ledger_atomic():
            lost = Wager.objects.transition(
                wager.pk,
                Wager.ACTIVE,
                Wager.LOST,
                account=account,
                settled_at=now,
            )
            if not lost:
                raise InvalidWager()
            self._notify_on_commit(account.user_id, crash_message(wager.bet_amount))

        logger.info("Wager %s lost by %s: bet=%s", wager.pk, account.user_id, wager.bet_amount)
        wager.status = Wager.LOST
        wager.settled_at = now
        return wager

    def preview(self, account, wager_id, now=None) -> MultiplierPreview:
        wager = self._owned_wager(account, wager_id)
        now = now or self.clock()
        elapsed = elapsed_seconds(now - wager.start_time)

        if wager.status == Wager.ACTIVE:
            multiplier = self.oracle(elapsed)
        else:
            multiplier = wager.final_multiplier

        return MultiplierPreview(
            wager_id=wager.pk,
            status=wager.status,
            bet_amount=wager.bet_amount,
            elapsed=elapsed,
            multiplier=multiplier,
        )

    def expire_stale(self, older_than, now=None, dry_run=False) -> list:
        """
        Settles ACTIVE wagers started before now - older_than as LOST.
        Returns the ids that this call settled.
        """
        now = now or self.clock()
        candidates = list(
            Wager.objects.stale(now - older_than)
            .select_related("account")
            .order_by("start_time")
        )
        if dry_run:
            return [w.pk for w in candidates]

        expired = []
        for wager in candidates:
            with ledger_atomic():
                if not Wager.objects.transition(wager.pk, Wager.ACTIVE, Wager.LOST, settled_at=now):
                    continue
                self._notify_on_commit(wager.account.user_id, expired_message(wager.bet_amount))
            expired.append(wager.pk)
            logger.info("Stale wager %s expired as lost", wager.pk)
        return expired


@lru_cache(maxsize=1)
def get_engine() -> SettlementEngine:
    return SettlementEngine.from_settings()
