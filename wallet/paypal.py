import time
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from flask import current_app

from logger import payouts_logger


SANDBOX_BASE_URL = "https://api-m.sandbox.paypal.com"
LIVE_BASE_URL = "https://api-m.paypal.com"


# ==========================================================
#                  GATEWAY TYPES
# ==========================================================
class PayoutGatewayError(Exception):
    """Provider or transport failure talking to PayPal."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self):
        if self.status_code:
            return f"({self.status_code}) {self.message}"
        return self.message


@dataclass
class PayoutSubmission:
    batch_id: str
    status: str
    payout_item_id: Optional[str] = None


@dataclass
class PayoutItem:
    transaction_status: str
    error_message: Optional[str] = None
    payout_item_id: Optional[str] = None


@dataclass
class PayoutStatus:
    batch_id: str
    status: str
    items: List[PayoutItem] = field(default_factory=list)


# ==========================================================
#                  PAYPAL PAYOUTS CLIENT
# ==========================================================
class PayPalPayoutClient:
    """Thin PayPal Payouts REST client: OAuth2 client credentials, create and read batches."""

    def __init__(self, client_id: str, client_secret: str, mode: str = "sandbox",
                 timeout: int = 30, session: requests.Session = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = LIVE_BASE_URL if mode == "live" else SANDBOX_BASE_URL
        self.timeout = timeout
        self.session = session or self._build_session()
        self._access_token = None
        self._token_expires_at = 0.0

    @classmethod
    def from_config(cls, config) -> "PayPalPayoutClient":
        return cls(
            client_id=config.get("PAYPAL_CLIENT_ID"),
            client_secret=config.get("PAYPAL_CLIENT_SECRET"),
            mode=config.get("PAYPAL_MODE", "sandbox"),
            timeout=config.get("PAYPAL_TIMEOUT", 30),
        )

    @staticmethod
    def _build_session() -> requests.Session:
        # POST is retried too: sender_batch_id makes payout creation idempotent
        session = requests.Session()
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=frozenset(["GET", "POST"]),
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    # ----------------------------------------------------------
    # Transport
    # ----------------------------------------------------------
    @staticmethod
    def _error_message(response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason or "Unknown error"
        return body.get("message") or body.get("error_description") or body.get("name") or "Unknown error"

    def _get_access_token(self) -> str:
        if self._access_token and time.time() < self._token_expires_at:
            return self._access_token

        if not self.client_id or not self.client_secret:
            raise PayoutGatewayError("PayPal credentials are not configured")

        try:
            response = self.session.post(
                f"{self.base_url}/v1/oauth2/token",
                auth=(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            payouts_logger.error(f"PayPal token request failed: {e}")
            raise PayoutGatewayError(f"PayPal authentication failed: {e}")

        if response.status_code != 200:
            message = self._error_message(response)
            payouts_logger.error(f"PayPal token request rejected ({response.status_code}): {message}")
            raise PayoutGatewayError(f"PayPal authentication failed: {message}", response.status_code)

        token = response.json()
        self._access_token = token["access_token"]
        # Refresh a minute before PayPal expires it
        self._token_expires_at = time.time() + int(token.get("expires_in", 0)) - 60
        return self._access_token

    def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = {
            "Authorization": f"Bearer {self._get_access_token()}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.request(
                method, f"{self.base_url}{path}", headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            payouts_logger.error(f"PayPal {method} {path} failed: {e}")
            raise PayoutGatewayError(str(e))

        if response.status_code == 401:
            self._access_token = None

        if response.status_code >= 400:
            message = self._error_message(response)
            payouts_logger.error(f"PayPal {method} {path} returned {response.status_code}: {message}")
            raise PayoutGatewayError(message, response.status_code)

        return response.json()

    # ----------------------------------------------------------
    # Payouts API
    # ----------------------------------------------------------
    def submit_payout(self, email: str, amount, currency: str = "USD") -> PayoutSubmission:
        stamp = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
        value = Decimal(str(amount)).quantize(Decimal("0.01"))
        body = {
            "sender_batch_header": {
                "sender_batch_id": f"batch_{stamp}",
                "email_subject": "You have a payout!",
                "email_message": "You have received a payout from our platform!",
            },
            "items": [
                {
                    "recipient_type": "EMAIL",
                    "amount": {"value": str(value), "currency": currency},
                    "receiver": email,
                    "note": "Withdrawal from wallet",
                    "sender_item_id": f"item_{stamp}",
                }
            ],
        }

        result = self._request("POST", "/v1/payments/payouts", json=body)
        header = result.get("batch_header")
        if not header or not header.get("payout_batch_id"):
            raise PayoutGatewayError("Invalid PayPal response structure")

        items = result.get("items") or []
        submission = PayoutSubmission(
            batch_id=header["payout_batch_id"],
            status=header.get("batch_status", "PENDING"),
            payout_item_id=items[0].get("payout_item_id") if items else None,
        )
        payouts_logger.info(f"Payout batch {submission.batch_id} submitted: {value} {currency} -> {email}")
        return submission

    def get_payout_status(self, batch_id: str) -> PayoutStatus:
        result = self._request("GET", f"/v1/payments/payouts/{batch_id}")
        header = result.get("batch_header") or {}

        items = []
        for item in result.get("items") or []:
            errors = item.get("errors") or {}
            items.append(PayoutItem(
                transaction_status=item.get("transaction_status", "UNKNOWN"),
                error_message=errors.get("message"),
                payout_item_id=item.get("payout_item_id"),
            ))

        return PayoutStatus(
            batch_id=header.get("payout_batch_id", batch_id),
            status=header.get("batch_status", "UNKNOWN"),
            items=items,
        )


def get_payout_gateway():
    """The app's payout gateway, built from config on first use."""
    gateway = current_app.extensions.get("payout_gateway")
    if gateway is None:
        gateway = PayPalPayoutClient.from_config(current_app.config)
        current_app.extensions["payout_gateway"] = gateway
    return gateway
