import threading
import logging
from contextlib import contextmanager
from decimal import Decimal

from sqlalchemy import update

from extensions import db
from models import Wallet
from errors import ConflictError
from wallet.config import WalletConfig


logger = logging.getLogger(__name__)


# ==========================================================
#                  BALANCE LOCK MANAGER
# ==========================================================
class BalanceLockManager:
    """Process-local per-creator locks used by WALLET_LOCK_MODE=mutex."""
    _locks = {}
    _registry_lock = threading.Lock()

    @classmethod
    def lock_for(cls, creator_id: int) -> threading.Lock:
        with cls._registry_lock:
            lock = cls._locks.get(creator_id)
            if lock is None:
                lock = threading.Lock()
                cls._locks[creator_id] = lock
            return lock

    @classmethod
    @contextmanager
    def hold(cls, creator_id: int):
        lock = cls.lock_for(creator_id)
        with lock:
            yield


# ==========================================================
#                  BALANCE MANAGER
# ==========================================================
class BalanceManager:
    """
    Wallet reads and balance mutations under the configured WALLET_LOCK_MODE:

      none   - plain read-modify-write
      mutex  - per-creator process lock held until the caller leaves the block
      row    - SELECT ... FOR UPDATE on the wallet row
      atomic - UPDATE wallets SET balance = balance +/- x, debit guarded by balance >= x

    Callers commit inside the `locked_wallet` block.
    """

    @staticmethod
    def _load(creator_id: int, mode: str):
        query = Wallet.query.filter_by(creator_id=creator_id)
        if mode == "row":
            query = query.with_for_update()
        if mode in ("mutex", "row"):
            query = query.populate_existing()
        return query.first()

    @staticmethod
    @contextmanager
    def locked_wallet(creator_id: int):
        """Yield the creator's wallet (or None) with the configured lock held."""
        mode = WalletConfig.lock_mode()
        if mode == "mutex":
            with BalanceLockManager.hold(creator_id):
                yield BalanceManager._load(creator_id, mode)
        else:
            yield BalanceManager._load(creator_id, mode)

    @staticmethod
    def credit(wallet: Wallet, amount) -> Wallet:
        amount = WalletConfig.quantize(amount)
        if WalletConfig.lock_mode() == "atomic":
            db.session.execute(
                update(Wallet)
                .where(Wallet.id == wallet.id)
                .values(balance=Wallet.balance + amount)
                .execution_options(synchronize_session=False)
            )
            db.session.expire(wallet, ["balance"])
        else:
            current = Decimal(str(wallet.balance or 0))
            wallet.balance = WalletConfig.quantize(current + amount)
        return wallet

    @staticmethod
    def debit(wallet: Wallet, amount) -> Wallet:
        amount = WalletConfig.quantize(amount)
        if WalletConfig.lock_mode() == "atomic":
            result = db.session.execute(
                update(Wallet)
                .where(Wallet.id == wallet.id, Wallet.balance >= amount)
                .values(balance=Wallet.balance - amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConflictError("Insufficient balance")
            db.session.expire(wallet, ["balance"])
        else:
            current = Decimal(str(wallet.balance or 0))
            if amount > current:
                raise ConflictError("Insufficient balance")
            wallet.balance = WalletConfig.quantize(current - amount)
        return wallet

    @staticmethod
    def refund(creator_id: int, amount) -> bool:
        """
        Re-credit a withdrawal amount and commit it together with any pending
        session changes. Returns False when the wallet no longer exists.
        """
        with BalanceManager.locked_wallet(creator_id) as wallet:
            if wallet is None:
                logger.error(f"Refund of {amount} skipped: no wallet for creator {creator_id}")
                db.session.commit()
                return False
            BalanceManager.credit(wallet, amount)
            db.session.commit()
            return True
