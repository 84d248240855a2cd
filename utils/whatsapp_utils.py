"""
utils/whatsapp_utils.py

Purpose: WhatsApp text helpers

- Converts between gateway chat ids and plain phone numbers
- Money and status formatting shared by all handlers
"""

from typing import Optional

from utils.constants import CURRENCY_SYMBOL, ORDER_STATUS_LABELS

CHAT_ID_SUFFIX = "@c.us"


def to_chat_id(phone: str) -> str:
    """
    Converts a phone number into a WAHA chat id.

    Example:
        "+27 82 000 0000" -> "27820000000@c.us"
    """
    if "@" in phone:
        return phone
    digits = "".join(ch for ch in phone if ch.isdigit())
    return f"{digits}{CHAT_ID_SUFFIX}"


def phone_from_chat_id(chat_id: Optional[str]) -> str:
    """
    Strips the gateway suffix from a chat id.

    Example:
        "27820000000@c.us" -> "27820000000"
    """
    if not chat_id:
        return ""
    return chat_id.split("@", 1)[0]


def format_money(amount: float) -> str:
    return f"{CURRENCY_SYMBOL}{amount:.2f}"


def format_status(status: str) -> str:
    return ORDER_STATUS_LABELS.get(status, status)
