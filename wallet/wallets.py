import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from extensions import db
from models import Wallet
from errors import NotFoundError, ValidationError, ConflictError
from utils import validate_email


logger = logging.getLogger(__name__)


class WalletManager:

    @staticmethod
    def create_wallet(creator_id: int) -> Wallet:
        if Wallet.query.filter_by(creator_id=creator_id).first() is not None:
            raise ConflictError("Wallet already exists for this creator.")

        wallet = Wallet(creator_id=creator_id, balance=Decimal("0.00"))
        db.session.add(wallet)
        try:
            db.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent create for the same creator
            db.session.rollback()
            raise ConflictError("Wallet already exists for this creator.")

        logger.info(f"Wallet {wallet.id} created for creator {creator_id}")
        return wallet

    @staticmethod
    def get_wallet_by_creator_id(creator_id: int) -> Wallet:
        wallet = Wallet.query.filter_by(creator_id=creator_id).first()
        if wallet is None:
            raise NotFoundError("Wallet not found")
        return wallet

    @staticmethod
    def link_paypal(creator_id: int, email: str) -> Wallet:
        """Attach a PayPal address. Ownership of the address is not verified."""
        wallet = WalletManager.get_wallet_by_creator_id(creator_id)

        email = (email or "").strip()
        if not validate_email(email):
            raise ValidationError("A valid PayPal email is required")

        wallet.paypal_email = email
        wallet.paypal_verified = True
        db.session.commit()

        logger.info(f"Creator {creator_id} linked PayPal account {email}")
        return wallet
