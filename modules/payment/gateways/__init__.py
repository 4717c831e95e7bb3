"""
Payment Processor Abstraction
===============================
Each processor implements create_intent(), retrieve_intent() and
construct_event(). The concrete instance is built in main.create_app()
and injected, so tests can swap in a fake.

Amounts are integer minor units (cents) and are passed through unchanged.
"""

from typing import Dict, Optional
from dataclasses import dataclass


EVENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_FAILED = "payment_intent.payment_failed"

INTENT_SUCCEEDED = "succeeded"


@dataclass
class IntentResult:
    """Result of create_intent()."""
    intent_id: str
    client_secret: str


@dataclass
class IntentStatus:
    """Result of retrieve_intent()."""
    intent_id: str
    status: str
    amount: int
    order_id: Optional[int] = None


@dataclass
class ProcessorEvent:
    """A webhook event whose signature has already been verified."""
    type: str
    intent_id: Optional[str] = None
    order_id: Optional[int] = None
    event_id: Optional[str] = None


class BaseProcessor:
    """Abstract processor interface."""
    name: str = ""

    def create_intent(self, amount_minor: int, currency: str, metadata: Dict[str, str]) -> IntentResult:
        raise NotImplementedError

    def retrieve_intent(self, intent_id: str) -> IntentStatus:
        raise NotImplementedError

    def construct_event(self, raw_body: bytes, signature_header: Optional[str]) -> ProcessorEvent:
        raise NotImplementedError
