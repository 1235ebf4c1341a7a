"""Signature checks for inbound transaction webhooks."""

import hashlib
import hmac
import logging
from typing import Mapping, Optional

from ..errors import WebhookSignatureError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-webhook-signature"


class WebhookVerifier:
    """HMAC-SHA256 (hex) over the raw request body.

    Without a secret, development deployments accept any signature and
    production deployments reject everything.
    """

    def __init__(self, secret: str, production: bool = False):
        self.secret = secret
        self.production = production
        if not secret:
            logger.warning("Webhook secret not set - signature verification disabled outside production")

    def generate_signature(self, body: bytes) -> str:
        if not self.secret:
            raise WebhookSignatureError("Webhook secret not configured")
        return hmac.new(self.secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

    def verify(self, body: bytes, signature: Optional[str]) -> bool:
        if not self.secret:
            if self.production:
                logger.error("Webhook secret not configured - rejecting webhook")
                return False
            logger.warning("Skipping webhook signature verification - no secret configured")
            return True

        if not signature:
            return False
        expected = self.generate_signature(body).encode("ascii")
        # Header values may hold non-ASCII text
        provided = signature.strip().lower().encode("utf-8", "surrogateescape")
        return hmac.compare_digest(expected, provided)

    def require_valid(self, body: bytes, signature: Optional[str]) -> None:
        if not signature:
            raise WebhookSignatureError("Missing signature")
        if not self.verify(body, signature):
            raise WebhookSignatureError("Invalid signature")

    @staticmethod
    def extract_signature(headers: Mapping[str, str]) -> Optional[str]:
        signature = headers.get(SIGNATURE_HEADER)
        if signature is None:
            # Plain dicts are case-sensitive
            for name, value in headers.items():
                if name.lower() == SIGNATURE_HEADER:
                    signature = value
                    break
        return signature or None
