import bcrypt
from typing import Dict

from ..core.config import Config


def hash_card_field(value: str, rounds: int = None) -> str:
    """
    One-way hash of a single card field. The raw value cannot be recovered,
    bcrypt only reads the first 72 bytes.
    """
    salt = bcrypt.gensalt(rounds=rounds or Config.CARD_HASH_ROUNDS)
    return bcrypt.hashpw(value.encode("utf-8")[:72], salt).decode("utf-8")


def mask_card_details(
    card_number: str,
    card_holder: str,
    expiry_month: str,
    expiry_year: str,
    cvv: str,
) -> Dict[str, str]:
    """Hashes every card field and keeps the last four digits for display"""
    return {
        "card_number_hash": hash_card_field(card_number),
        "card_holder_hash": hash_card_field(card_holder),
        "card_expiry_month_hash": hash_card_field(expiry_month),
        "card_expiry_year_hash": hash_card_field(expiry_year),
        "card_cvv_hash": hash_card_field(cvv),
        "card_last_four": card_number[-4:],
    }


def card_field_matches(value: str, hashed: str) -> bool:
    return bcrypt.checkpw(value.encode("utf-8")[:72], hashed.encode("utf-8"))
