"""
WhatsApp click-to-chat links (https://wa.me/<phone>?text=<message>).
"""

import re
from typing import Dict, Optional
from urllib.parse import quote

COUNTRY_CODE = '91'
WA_ME_URL = 'https://wa.me'

NON_DIGITS = re.compile(r'\D')


def format_phone_number(phone: str) -> str:
    """
    Normalise a phone number to the international digits wa.me expects.

    A leading 0 is replaced by the Indian country code, and a bare 10-digit
    number gets the country code prepended.
    """
    cleaned = NON_DIGITS.sub('', phone or '')

    if cleaned.startswith('0'):
        cleaned = COUNTRY_CODE + cleaned[1:]

    if len(cleaned) == 10 and not cleaned.startswith(COUNTRY_CODE):
        cleaned = COUNTRY_CODE + cleaned

    return cleaned


def generate_whatsapp_link(phone: str, message: str, invoice_path: Optional[str] = None) -> Dict[str, Optional[str]]:
    """Build a pre-filled wa.me link; the invoice path is passed through for the UI to attach."""
    encoded_message = quote(message or '', safe="!*'()")
    return {
        'whatsapp_link': f"{WA_ME_URL}/{format_phone_number(phone)}?text={encoded_message}",
        'invoice_path': invoice_path,
    }
