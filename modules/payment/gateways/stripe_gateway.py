"""
Stripe Processor
=================
PaymentIntent create/retrieve via the stripe SDK, webhook verification via
stripe.WebhookSignature (HMAC over the raw body).
"""

import json
import logging
from typing import Dict, Optional

import stripe

from common.exceptions import ExternalServiceError, SignatureError
from common.helpers import safe_int
from modules.payment.gateways import (
    BaseProcessor, IntentResult, IntentStatus, ProcessorEvent,
)

logger = logging.getLogger("homelyeats.gateway.stripe")


class StripeProcessor(BaseProcessor):
    name = "stripe"

    def __init__(self, secret_key: str, webhook_secret: str, timeout: int = 15):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self._client: Optional[stripe.StripeClient] = None

    @property
    def client(self) -> stripe.StripeClient:
        if not self.secret_key:
            logger.error("STRIPE_SECRET_KEY is not configured")
            raise ExternalServiceError("Payment processor is not configured")
        if self._client is None:
            self._client = stripe.StripeClient(
                self.secret_key,
                http_client=stripe.RequestsClient(timeout=self.timeout),
                max_network_retries=0,
            )
        return self._client

    def create_intent(self, amount_minor: int, currency: str, metadata: Dict[str, str]) -> IntentResult:
        try:
            intent = self.client.payment_intents.create(params={
                "amount": amount_minor,
                "currency": currency,
                "metadata": metadata,
                "automatic_payment_methods": {"enabled": True},
            })
        except stripe.StripeError as e:
            logger.error(f"Stripe create intent failed [{metadata.get('orderId')}]: {e}")
            raise ExternalServiceError("Failed to start payment")

        logger.info(f"Stripe intent {intent.id} created [{metadata.get('orderId')}]: {amount_minor} {currency}")
        return IntentResult(intent_id=intent.id, client_secret=intent.client_secret)

    def retrieve_intent(self, intent_id: str) -> IntentStatus:
        try:
            intent = self.client.payment_intents.retrieve(intent_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe retrieve intent {intent_id} failed: {e}")
            raise ExternalServiceError("Failed to verify payment")

        metadata = dict(intent.metadata or {})
        return IntentStatus(
            intent_id=intent.id,
            status=intent.status,
            amount=intent.amount,
            order_id=safe_int(metadata.get("orderId")),
        )

    def construct_event(self, raw_body: bytes, signature_header: Optional[str]) -> ProcessorEvent:
        if not signature_header:
            raise SignatureError("Missing signature")
        if not self.webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not configured, rejecting webhook")
            raise SignatureError()

        try:
            payload = raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body
        except UnicodeDecodeError:
            raise SignatureError("Invalid payload")

        try:
            stripe.WebhookSignature.verify_header(payload, signature_header, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Webhook signature rejected: {e}")
            raise SignatureError()

        try:
            event = json.loads(payload)
        except ValueError as e:
            logger.warning(f"Webhook payload is not valid JSON: {e}")
            raise SignatureError("Invalid payload")
        if not isinstance(event, dict):
            raise SignatureError("Invalid payload")

        return parse_event(event)


def parse_event(event: dict) -> ProcessorEvent:
    """Pull type / intent id / order id out of a verified event without trusting its shape."""
    event_type = event.get("type")
    if not isinstance(event_type, str):
        event_type = ""
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        obj = {}

    intent_id = None
    order_id = None
    if obj.get("object") == "payment_intent" or event_type.startswith("payment_intent."):
        intent_id = obj.get("id") if isinstance(obj.get("id"), str) else None
        metadata = obj.get("metadata")
        if isinstance(metadata, dict):
            order_id = safe_int(metadata.get("orderId"))

    return ProcessorEvent(
        type=event_type,
        intent_id=intent_id,
        order_id=order_id,
        event_id=event.get("id"),
    )
