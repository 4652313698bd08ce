"""
Helper utility functions for request parsing and pagination.
"""

import re
import json
from collections import defaultdict
from flask import request

from validators import ValidationError, parse_datetime

REQUIREMENT_FILE_PATTERN = re.compile(r'^requirements\[(\d+)\]\[images?\]$')


def get_pagination(default_limit=20):
    """
    Read page/limit from the query string.

    Returns:
        Tuple of (page, limit), both at least 1
    """
    try:
        page = max(int(request.args.get('page', 1)), 1)
        limit = max(int(request.args.get('limit', default_limit)), 1)
    except (TypeError, ValueError):
        raise ValidationError('page and limit must be integers', field='page')
    return page, limit


def pagination_info(page, limit, total):
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': (total + limit - 1) // limit if limit else 0
    }


def get_json_body():
    """Decoded JSON object body; an empty body reads as {}"""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object', field='body')
    return data


def parse_bool_arg(name):
    """Query flag as True/False, or None when absent"""
    value = request.args.get(name)
    if value is None or value == '':
        return None
    return value.lower() in ('true', '1', 'yes')


def parse_date_args():
    """start_date/end_date query parameters as naive UTC datetimes"""
    return (parse_datetime(request.args.get('start_date'), 'start_date'),
            parse_datetime(request.args.get('end_date'), 'end_date'))


def parse_order_payload():
    """
    Read an order payload from JSON or multipart form data.

    Multipart requests carry the order as a JSON string in ``order_data``;
    files named requirements[i][images] / requirements[i][image] belong to
    special requirement i.

    Returns:
        Tuple of (data, {index: [FileStorage, ...]})
    """
    if request.mimetype != 'multipart/form-data':
        return get_json_body(), {}

    raw = request.form.get('order_data')
    try:
        data = json.loads(raw) if raw else {}
    except ValueError:
        raise ValidationError('Invalid JSON in order_data', field='order_data')
    if not isinstance(data, dict):
        raise ValidationError('Invalid JSON in order_data', field='order_data')

    files = defaultdict(list)
    for field_name in request.files:
        match = REQUIREMENT_FILE_PATTERN.match(field_name)
        if match:
            files[int(match.group(1))].extend(f for f in request.files.getlist(field_name) if f.filename)
    return data, dict(files)


def parse_note_payload():
    """
    Read a note and its images from form data or a JSON body.

    Returns:
        Tuple of (note, [FileStorage, ...])
    """
    if request.mimetype == 'multipart/form-data':
        note = (request.form.get('note') or '').strip()
        files = [f for f in request.files.getlist('images') if f.filename]
        return note, files
    note = get_json_body().get('note')
    return (note.strip() if isinstance(note, str) else ''), []
