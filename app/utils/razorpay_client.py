import razorpay
import requests
from razorpay import errors as razorpay_errors
from razorpay.errors import SignatureVerificationError
from razorpay.utility import Utility

from app.core.exceptions import GatewayError
from app.core.logging_config import get_logger

logger = get_logger()


class RazorpayGateway:
    """Thin wrapper around the Razorpay SDK.

    Built once at startup. Without credentials every gateway call raises
    ``GatewayError`` instead of callers checking for a missing client.
    """

    def __init__(self, key_id: str, key_secret: str, webhook_secret: str = "", timeout: float = 10):
        self.key_id = key_id
        self.timeout = timeout
        self._webhook_secret = webhook_secret
        self._utility = Utility()

        if key_id and key_secret:
            self._client = razorpay.Client(auth=(key_id, key_secret))
        else:
            self._client = None
            logger.bind(log_type="payment").warning(
                "Razorpay credentials not configured (RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET)"
            )

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    @property
    def has_webhook_secret(self) -> bool:
        return bool(self._webhook_secret)

    def _require_client(self):
        if self._client is None:
            raise GatewayError("Payment gateway is not configured")
        return self._client

    # ---------------- ORDERS ----------------
    def create_order(self, amount_minor: int, currency: str, receipt: str) -> dict:
        client = self._require_client()

        try:
            order = client.order.create(
                {
                    "amount": int(amount_minor),
                    "currency": currency,
                    "receipt": receipt,
                    "payment_capture": 1,
                },
                timeout=self.timeout,
            )
        except requests.Timeout:
            logger.bind(log_type="payment").error(f"Razorpay order creation timed out | receipt={receipt}")
            raise GatewayError("Payment gateway timed out while creating the order")
        except (razorpay_errors.BadRequestError,
                razorpay_errors.ServerError,
                razorpay_errors.GatewayError,
                requests.RequestException,
                ValueError) as e:
            logger.bind(log_type="payment").error(f"Razorpay order creation failed | receipt={receipt} | {e}")
            raise GatewayError(f"Failed to create payment order: {e}")

        logger.bind(log_type="payment").info(
            f"Razorpay order created | order={order['id']} | amount={amount_minor} {currency}"
        )
        return order

    # ---------------- SIGNATURES ----------------
    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """HMAC-SHA256 of ``order_id|payment_id`` with the key secret."""
        client = self._require_client()
        if not signature:
            return False

        try:
            client.utility.verify_payment_signature({
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            })
        except SignatureVerificationError:
            return False
        return True

    def verify_webhook_signature(self, body: bytes, signature: str | None) -> bool:
        if not self._webhook_secret or not signature:
            return False

        try:
            self._utility.verify_webhook_signature(
                body.decode("utf-8"), signature, self._webhook_secret
            )
        except (SignatureVerificationError, UnicodeDecodeError):
            return False
        return True
