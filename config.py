# ==========================================================================================================
# -------------- Configuration file for the Creator Ledger Flask application ------------------------------
# ==========================================================================================================
import os
from dotenv import load_dotenv


if os.environ.get("FLASK_ENV") != "production":
    load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


class Config:

    SECRET_KEY = os.getenv("SECRET_KEY")
    if not SECRET_KEY:
        raise ValueError("SECRET_KEY must be set")

    FLASK_ENV = os.getenv("FLASK_ENV", "production")
    DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "t")
    TESTING = False

    _database_url = os.getenv("DATABASE_URL")
    if not _database_url:
        _database_url = f"sqlite:///{os.path.join(basedir, 'instance', 'creator_ledger.db')}"

    if _database_url.startswith("postgres://"):
        _database_url = _database_url.replace("postgres://", "postgresql+pg8000://", 1)

    SQLALCHEMY_DATABASE_URI = _database_url
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # PayPal Payouts
    PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID")
    PAYPAL_CLIENT_SECRET = os.getenv("PAYPAL_CLIENT_SECRET")
    PAYPAL_MODE = os.getenv("PAYPAL_MODE", "live" if FLASK_ENV == "production" else "sandbox")
    PAYPAL_TIMEOUT = int(os.getenv("PAYPAL_TIMEOUT", "30"))

    # Ledger rules
    EARNING_RATE_PER_VIEW = os.getenv("EARNING_RATE_PER_VIEW", "2")
    MIN_WITHDRAWAL_AMOUNT = os.getenv("MIN_WITHDRAWAL_AMOUNT", "5")
    PAYOUT_CURRENCY = os.getenv("PAYOUT_CURRENCY", "USD")

    # none | mutex | row | atomic
    WALLET_LOCK_MODE = os.getenv("WALLET_LOCK_MODE", "row")

    # orphan | reject | cascade
    CATEGORY_DELETE_POLICY = os.getenv("CATEGORY_DELETE_POLICY", "orphan")
    CATEGORY_CACHE_ENABLED = os.getenv("CATEGORY_CACHE_ENABLED", "False").lower() in ("true", "1", "t")
    CATEGORY_CACHE_TTL = int(os.getenv("CATEGORY_CACHE_TTL", "300"))

    LOG_DIR = os.getenv("LOG_DIR", "logs")


class TestingConfig(Config):
    TESTING = True
    FLASK_ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    PAYPAL_CLIENT_ID = "test-client"
    PAYPAL_CLIENT_SECRET = "test-secret"
    PAYPAL_MODE = "sandbox"
    WALLET_LOCK_MODE = "row"
    CATEGORY_CACHE_ENABLED = False
