"""
Utilities Package

Shared request helpers used across the API blueprints.
"""

from app.utils.helpers import (
    get_pagination,
    pagination_info,
    get_json_body,
    parse_bool_arg,
    parse_date_args,
    parse_order_payload,
    parse_note_payload,
)

__all__ = [
    'get_pagination',
    'pagination_info',
    'get_json_body',
    'parse_bool_arg',
    'parse_date_args',
    'parse_order_payload',
    'parse_note_payload',
]
