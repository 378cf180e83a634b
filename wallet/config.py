from decimal import Decimal
from flask import current_app


LOCK_MODES = ("none", "mutex", "row", "atomic")


# ==========================================================
#                  LEDGER CONFIGURATION
# ==========================================================
class WalletConfig:
    EARNING_RATE_PER_VIEW = Decimal("2")
    MIN_WITHDRAWAL = Decimal("5")
    PAYOUT_CURRENCY = "USD"
    LOCK_MODE = "row"

    @staticmethod
    def quantize(amount) -> Decimal:
        return Decimal(str(amount)).quantize(Decimal("0.01"))

    @staticmethod
    def earning_rate() -> Decimal:
        return Decimal(str(current_app.config.get("EARNING_RATE_PER_VIEW", WalletConfig.EARNING_RATE_PER_VIEW)))

    @staticmethod
    def min_withdrawal() -> Decimal:
        return Decimal(str(current_app.config.get("MIN_WITHDRAWAL_AMOUNT", WalletConfig.MIN_WITHDRAWAL)))

    @staticmethod
    def currency() -> str:
        return current_app.config.get("PAYOUT_CURRENCY", WalletConfig.PAYOUT_CURRENCY)

    @staticmethod
    def lock_mode() -> str:
        mode = current_app.config.get("WALLET_LOCK_MODE", WalletConfig.LOCK_MODE)
        if mode not in LOCK_MODES:
            raise ValueError(f"Unknown WALLET_LOCK_MODE '{mode}'")
        return mode
