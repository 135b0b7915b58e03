"""
Append-only ledger with a running balance.

Each row in ``accounts`` records the balance right after it was applied,
so the current balance of a user is simply the ``balance`` of their newest
row. Reading that balance and appending the next row has to happen as one
step: mutations for the same user are serialized through a per-user lock.
The lock is process local; several worker processes sharing one database
would need a database-level guard instead.
"""

import logging
import threading
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List

from sqlmodel import Session, select

from .errors import InsufficientFunds, NotFound, ValidationError
from .models import EntryType, LedgerEntry, User

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(CENT)
    except ArithmeticError:
        raise ValidationError("Invalid amount.")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Invalid amount.")
    return amount


class Ledger:
    def __init__(self):
        self._locks: Dict[int, threading.Lock] = defaultdict(threading.Lock)
        self._guard = threading.Lock()

    def _lock_for(self, user_id: int) -> threading.Lock:
        with self._guard:
            return self._locks[user_id]

    def latest_balance(self, session: Session, user_id: int) -> Decimal:
        stmt = (
            select(LedgerEntry.balance)
            .where(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.id.desc())
            .limit(1)
        )
        balance = session.exec(stmt).first()
        return ZERO if balance is None else Decimal(balance).quantize(CENT)

    def history(self, session: Session, user_id: int) -> List[LedgerEntry]:
        stmt = select(LedgerEntry).where(LedgerEntry.user_id == user_id).order_by(LedgerEntry.id.desc())
        return list(session.exec(stmt))

    def deposit(self, session: Session, user_id: int, amount) -> Decimal:
        amount = to_amount(amount)
        # users are never deleted through the API
        if not self._user_exists(session, user_id):
            raise NotFound("User not found")
        with self._lock_for(user_id):
            balance = self.latest_balance(session, user_id) + amount
            self._append(session, user_id, EntryType.deposit, amount, balance)
        logger.info("deposit %s, balance %s", amount, balance, extra={"action": "deposit", "user_id": user_id})
        return balance

    def withdraw(self, session: Session, user_id: int, amount) -> Decimal:
        amount = to_amount(amount)
        # an unknown user has no rows, so a balance of zero
        if not self._user_exists(session, user_id):
            self._refuse(user_id, amount, ZERO)
        with self._lock_for(user_id):
            current = self.latest_balance(session, user_id)
            if amount > current:
                self._refuse(user_id, amount, current)
            balance = current - amount
            self._append(session, user_id, EntryType.withdrawal, amount, balance)
        logger.info("withdrawal %s, balance %s", amount, balance, extra={"action": "withdraw", "user_id": user_id})
        return balance

    def _user_exists(self, session: Session, user_id: int) -> bool:
        return session.get(User, user_id) is not None

    def _refuse(self, user_id: int, amount: Decimal, current: Decimal):
        logger.info(
            "withdrawal of %s refused, balance %s", amount, current,
            extra={"action": "withdraw", "user_id": user_id},
        )
        raise InsufficientFunds("Insufficient funds.")

    def _append(self, session: Session, user_id: int, kind: EntryType, amount: Decimal, balance: Decimal):
        session.add(LedgerEntry(user_id=user_id, type=kind, amount=amount, balance=balance))
        session.commit()
