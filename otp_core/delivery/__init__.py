"""
Delivery Module
===============
Hands issued codes to the email and WhatsApp providers.
"""

from .base import DeliveryResult, DeliverySender, DeliveryRouter
from .whatsapp import WhatsAppSender
from .emailer import EmailerSender

__all__ = [
    "DeliveryResult",
    "DeliverySender",
    "DeliveryRouter",
    "WhatsAppSender",
    "EmailerSender",
]
