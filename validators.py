"""
Input Validation & Sanitization Utilities
Provides request payload schemas, identifier checks and upload validation
"""
import re
import os
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Tuple
from dateutil import parser as date_parser
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename
import logging

logger = logging.getLogger(__name__)

# Enumerations shared by models, schemas and routes
USER_ROLES = ('admin', 'user')
GARMENT_CATEGORIES = ('Men', 'Women', 'Kids', 'Unisex')
ORDER_STATUSES = ('Pending', 'InProgress', 'Trial', 'Completed', 'Delivered', 'Cancelled')
MESSAGE_TYPES = (
    'OrderConfirmation', 'TrialReminder', 'DeliveryReminder', 'PaymentReminder',
    'PostDelivery', 'OrderReady', 'InactiveClient', 'ReEngagement', 'Feedback', 'Custom',
)
MESSAGE_STATUSES = ('Pending', 'Sent', 'Delivered', 'Failed', 'Read')
TEMPLATE_TYPES = (
    'OrderConfirmation', 'TrialReminder', 'DeliveryReminder', 'PaymentReminder',
    'PostDelivery', 'OrderReady', 'InactiveClient', 'Custom',
)

ALLOWED_IMAGE_MIMETYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp'}

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_PATTERN = re.compile(r'^\+?[1-9]\d{9,14}$')
USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_]+$')

# Final amount may be adjusted up to this multiple of the quoted total
MAX_FINAL_AMOUNT_RATIO = 1.5


class ValidationError(Exception):
    """Raised when a payload or model rule is violated"""
    def __init__(self, message: str, field: Optional[str] = None, details: Optional[List[Dict[str, str]]] = None):
        self.message = message
        self.field = field
        self.details = details if details is not None else [{'field': field, 'message': message}]
        super().__init__(self.message)


class InvalidIdentifierError(Exception):
    """Raised when a path or reference id is not a well-formed UUID"""
    def __init__(self, field: str, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(f"Invalid ID format for {field}")


class FileTooLargeError(Exception):
    """Raised when a single uploaded file exceeds the configured limit"""
    def __init__(self, max_size: int):
        self.max_size = max_size
        super().__init__(f"File too large (maximum {format_size(max_size)})")


class FieldErrors:
    """Collects field-level errors so one response reports every problem."""

    def __init__(self):
        self.details: List[Dict[str, str]] = []

    def add(self, field: str, message: str):
        self.details.append({'field': field, 'message': message})

    def __bool__(self):
        return bool(self.details)

    def raise_if_any(self):
        if self.details:
            raise ValidationError('Validation error', field=self.details[0]['field'], details=self.details)


def format_size(num_bytes: int) -> str:
    """Render a byte count the way limits are reported to clients (e.g. 5MB)"""
    megabytes = num_bytes / (1024 * 1024)
    return f"{megabytes:g}MB"


def _label(field: str) -> str:
    return field.split('.')[-1].replace('_', ' ').capitalize()


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None or data[field] == '']

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"

    if len(email) > 254:  # RFC 5321
        return False, "Email address too long"

    if not EMAIL_PATTERN.match(email):
        return False, "Please provide a valid email address"

    return True, None


def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
    """
    Validate phone number format (optional +, no leading zero, 10-15 digits)

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone or not isinstance(phone, str):
        return False, "Phone must be a non-empty string"

    if not PHONE_PATTERN.match(phone):
        return False, "Please provide a valid phone number"

    return True, None


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000,
                           label: str = 'Value') -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length
        label: Field label used in the error message

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{label} must be a string"

    if len(value) < min_length:
        return False, f"{label} must be at least {min_length} characters"

    if max_length is not None and len(value) > max_length:
        return False, f"{label} cannot exceed {max_length} characters"

    return True, None


def validate_number_range(value: float, min_value: Optional[float] = None, max_value: Optional[float] = None,
                          label: str = 'Value') -> Tuple[bool, Optional[str]]:
    """
    Validate number is within acceptable range

    Args:
        value: Number to validate
        min_value: Minimum allowed value
        max_value: Maximum allowed value
        label: Field label used in the error message

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, f"{label} must be a number"

    if min_value is not None and value < min_value:
        if min_value == 0:
            return False, f"{label} cannot be negative"
        return False, f"{label} must be at least {min_value:g}"

    if max_value is not None and value > max_value:
        return False, f"{label} cannot exceed {max_value:g}"

    return True, None


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing null bytes and surrounding whitespace

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return str(value)

    sanitized = value.replace('\x00', '').strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def validate_uuid(value: Any, field: str = 'id') -> str:
    """
    Normalise an identifier, raising InvalidIdentifierError when malformed

    Args:
        value: Identifier from a URL or payload
        field: Name reported back to the client

    Returns:
        Canonical lowercase UUID string
    """
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdentifierError(field, value)


def parse_datetime(value: Any, field: str = 'date') -> Optional[datetime]:
    """
    Parse an ISO-8601 string into a naive UTC datetime

    Returns None for empty values and raises ValidationError for garbage.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = date_parser.isoparse(str(value))
        except (ValueError, OverflowError):
            raise ValidationError(f"{_label(field)} must be a valid ISO-8601 date", field=field)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# ============================================================================
# FIELD HELPERS
# ============================================================================

def _string(data, field, errors, required=False, min_length=0, max_length=None, prefix=''):
    key = f"{prefix}{field}"
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip() and not required):
        if required:
            errors.add(key, f"{_label(field)} is required")
        return None
    if not isinstance(value, str):
        errors.add(key, f"{_label(field)} must be a string")
        return None
    value = sanitize_string(value, max_length=100000)
    if required and not value:
        errors.add(key, f"{_label(field)} is required")
        return None
    is_valid, error = validate_string_length(value, min_length, max_length, label=_label(field))
    if not is_valid:
        errors.add(key, error)
        return None
    return value


def _number(data, field, errors, required=False, min_value=0, integer=False, prefix=''):
    key = f"{prefix}{field}"
    value = data.get(field)
    if value is None:
        if required:
            errors.add(key, f"{_label(field)} is required")
        return None
    is_valid, error = validate_number_range(value, min_value=min_value, label=_label(field))
    if not is_valid:
        errors.add(key, error)
        return None
    if integer and not float(value).is_integer():
        errors.add(key, f"{_label(field)} must be a whole number")
        return None
    return int(value) if integer else float(value)


def _choice(data, field, errors, choices, required=False):
    value = data.get(field)
    if value is None:
        if required:
            errors.add(field, f"{_label(field)} is required")
        return None
    if value not in choices:
        errors.add(field, f"{value} is not a valid {field.replace('_', ' ')}")
        return None
    return value


def _boolean(data, field, errors):
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, bool):
        errors.add(field, f"{_label(field)} must be true or false")
        return None
    return value


def _date(data, field, errors):
    try:
        return parse_datetime(data.get(field), field)
    except ValidationError as e:
        errors.add(field, e.message)
        return None


def _reference(data, field, errors, required=False, prefix=''):
    value = data.get(field)
    if value is None or value == '':
        if required:
            errors.add(f"{prefix}{field}", f"{_label(field).replace(' id', '')} is required")
        return None
    if not isinstance(value, str):
        errors.add(f"{prefix}{field}", f"{_label(field)} must be a string")
        return None
    return value


def _present(cleaned: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only keys the caller actually sent (for partial updates)."""
    return {key: value for key, value in cleaned.items() if key in data}


def _require_object(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object', field='body')
    return data


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

def validate_register(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a registration payload"""
    data = _require_object(data)
    errors = FieldErrors()
    username = _string(data, 'username', errors, required=True, min_length=3, max_length=30)
    if username and not USERNAME_PATTERN.match(username):
        errors.add('username', 'Username can only contain letters, numbers, and underscores')
    password = data.get('password')
    if not isinstance(password, str) or len(password) < 6:
        errors.add('password', 'Password must be at least 6 characters')
    name = _string(data, 'name', errors, required=True, min_length=2, max_length=100)
    role = _choice(data, 'role', errors, USER_ROLES)
    errors.raise_if_any()
    return {'username': username, 'password': password, 'name': name, 'role': role or 'user'}


def validate_login(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a login payload"""
    data = _require_object(data)
    errors = FieldErrors()
    username = _string(data, 'username', errors, required=True, min_length=1)
    password = data.get('password')
    if not isinstance(password, str) or not password:
        errors.add('password', 'Password is required')
    errors.raise_if_any()
    return {'username': username, 'password': password}


# ============================================================================
# CLIENT & GARMENT SCHEMAS
# ============================================================================

def validate_client(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a client create/update payload"""
    data = _require_object(data)
    errors = FieldErrors()
    name = _string(data, 'name', errors, required=True, min_length=2, max_length=100)

    phone = data.get('phone')
    is_valid, error = validate_phone(phone.strip() if isinstance(phone, str) else phone)
    if not is_valid:
        errors.add('phone', 'Please provide a valid phone number')

    email = data.get('email')
    if email:
        is_valid, error = validate_email(email.strip() if isinstance(email, str) else email)
        if not is_valid:
            errors.add('email', 'Please provide a valid email address')

    address = _string(data, 'address', errors, max_length=500)
    notes = _string(data, 'notes', errors)

    tags = data.get('tags')
    if tags is not None and (not isinstance(tags, list) or not all(isinstance(t, str) for t in tags)):
        errors.add('tags', 'Tags must be a list of strings')

    errors.raise_if_any()
    return {
        'name': name,
        'phone': phone.strip(),
        'email': email.strip().lower() if email else None,
        'address': address,
        'notes': notes,
        'tags': [t.strip() for t in tags] if tags else [],
    }


def validate_garment(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a garment type create/update payload"""
    data = _require_object(data)
    errors = FieldErrors()
    cleaned = {
        'name': _string(data, 'name', errors, required=True, min_length=2, max_length=100),
        'price': _number(data, 'price', errors, required=True),
        'cost': _number(data, 'cost', errors),
        'description': _string(data, 'description', errors, max_length=500),
        'category': _choice(data, 'category', errors, GARMENT_CATEGORIES),
        'is_active': _boolean(data, 'is_active', errors),
    }
    errors.raise_if_any()
    # Optional fields fall back to model defaults when omitted
    return {key: value for key, value in cleaned.items() if value is not None or key == 'description'}


# ============================================================================
# ORDER SCHEMAS
# ============================================================================

def _order_items(items, errors):
    if not isinstance(items, list):
        errors.add('items', 'Items must be a list')
        return None
    cleaned = []
    for index, item in enumerate(items):
        prefix = f"items.{index}."
        if not isinstance(item, dict):
            errors.add(f"items.{index}", 'Item must be an object')
            continue
        cleaned.append({
            'garment_type_id': _reference(item, 'garment_type_id', errors, required=True, prefix=prefix),
            'quantity': _number(item, 'quantity', errors, required=True, min_value=1, integer=True, prefix=prefix),
            'price': _number(item, 'price', errors, required=True, prefix=prefix),
            'cost': _number(item, 'cost', errors, prefix=prefix) or 0,
            'subtotal': _number(item, 'subtotal', errors, required=True, prefix=prefix),
        })
    return cleaned


def _additional_services(services, errors):
    if not isinstance(services, list):
        errors.add('additional_services', 'Additional services must be a list')
        return None
    cleaned = []
    for index, service in enumerate(services):
        prefix = f"additional_services.{index}."
        if not isinstance(service, dict):
            errors.add(f"additional_services.{index}", 'Service must be an object')
            continue
        cleaned.append({
            'description': _string(service, 'description', errors, required=True, min_length=1,
                                   max_length=200, prefix=prefix),
            'amount': _number(service, 'amount', errors, required=True, prefix=prefix),
            'cost': _number(service, 'cost', errors, prefix=prefix) or 0,
        })
    return cleaned


def _notes(entries, field, errors):
    if not isinstance(entries, list):
        errors.add(field, f"{_label(field)} must be a list")
        return None
    cleaned = []
    for index, entry in enumerate(entries):
        if isinstance(entry, str):
            entry = {'note': entry}
        if not isinstance(entry, dict):
            errors.add(f"{field}.{index}", 'Entry must be an object')
            continue
        note = _string(entry, 'note', errors, required=True, prefix=f"{field}.{index}.")
        images = entry.get('images') or []
        cleaned.append({
            'note': note,
            'image_url': entry.get('image_url'),
            's3_key': entry.get('s3_key'),
            'images': [img for img in images if isinstance(img, dict) and img.get('url')],
        })
    return cleaned


def validate_order(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate an order payload

    Args:
        data: Decoded JSON payload
        partial: When True every field is optional and only sent keys are returned

    Returns:
        Cleaned payload dictionary
    """
    data = _require_object(data)
    errors = FieldErrors()
    cleaned: Dict[str, Any] = {}

    cleaned['client_id'] = _reference(data, 'client_id', errors, required=not partial)

    if 'items' in data or not partial:
        items = data.get('items')
        if items is None or (isinstance(items, list) and not items):
            errors.add('items', 'Order must have at least one item')
        else:
            cleaned['items'] = _order_items(items, errors)

    if data.get('additional_services') is not None:
        cleaned['additional_services'] = _additional_services(data['additional_services'], errors)
    if data.get('special_requirements') is not None:
        cleaned['special_requirements'] = _notes(data['special_requirements'], 'special_requirements', errors)

    measurements = data.get('measurements')
    if measurements is not None and not isinstance(measurements, (dict, str)):
        errors.add('measurements', 'Measurements must be an object')
    cleaned['measurements'] = measurements

    cleaned['total_amount'] = _number(data, 'total_amount', errors, required=not partial)
    cleaned['final_amount'] = _number(data, 'final_amount', errors)
    cleaned['advance'] = _number(data, 'advance', errors)
    cleaned['trial_date'] = _date(data, 'trial_date', errors)
    cleaned['delivery_date'] = _date(data, 'delivery_date', errors)

    errors.raise_if_any()

    if partial:
        return _present(cleaned, data)
    if cleaned.get('advance') is None:
        cleaned['advance'] = 0
    return {key: value for key, value in cleaned.items() if key in data or key in ('advance', 'items')}


def validate_order_patch(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a partial order update of scalar fields (amounts, dates, measurements)"""
    data = _require_object(data)
    errors = FieldErrors()
    cleaned = {
        'total_amount': _number(data, 'total_amount', errors),
        'final_amount': _number(data, 'final_amount', errors),
        'advance': _number(data, 'advance', errors),
        'trial_date': _date(data, 'trial_date', errors),
        'delivery_date': _date(data, 'delivery_date', errors),
        'measurements': data.get('measurements'),
    }
    if 'status' in data:
        cleaned['status'] = _choice(data, 'status', errors, ORDER_STATUSES)
    if 'total_amount' in data and data['total_amount'] is None:
        errors.add('total_amount', 'Total amount is required')
    errors.raise_if_any()
    return _present(cleaned, data)


def validate_status_update(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate an order status change"""
    data = _require_object(data)
    errors = FieldErrors()
    status = _choice(data, 'status', errors, ORDER_STATUSES, required=True)
    reason = _string(data, 'cancellation_reason', errors)
    final_amount = _number(data, 'final_amount', errors)
    errors.raise_if_any()
    cleaned = {'status': status, 'cancellation_reason': reason}
    if final_amount is not None:
        cleaned['final_amount'] = final_amount
    return cleaned


def validate_cost_update(data: Dict[str, Any]) -> float:
    """Validate a single line cost adjustment"""
    data = _require_object(data)
    errors = FieldErrors()
    cost = _number(data, 'cost', errors, required=True)
    errors.raise_if_any()
    return cost


def check_final_amount(total_amount: Optional[float], final_amount: Optional[float]):
    """Final amount may not exceed 150% of the quoted total"""
    if final_amount and total_amount is not None and final_amount > total_amount * MAX_FINAL_AMOUNT_RATIO:
        raise ValidationError('Final amount cannot be more than 150% of total amount', field='final_amount')


# ============================================================================
# MESSAGE & TEMPLATE SCHEMAS
# ============================================================================

def validate_message(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a manually created message"""
    data = _require_object(data)
    errors = FieldErrors()
    cleaned = {
        'client_id': _reference(data, 'client_id', errors, required=True),
        'order_id': _reference(data, 'order_id', errors),
        'type': _choice(data, 'type', errors, MESSAGE_TYPES, required=True),
        'content': _string(data, 'content', errors, required=True),
        'status': _choice(data, 'status', errors, MESSAGE_STATUSES),
    }
    metadata = data.get('metadata')
    if metadata is not None and not isinstance(metadata, dict):
        errors.add('metadata', 'Metadata must be an object')
    cleaned['metadata'] = metadata or {}
    errors.raise_if_any()
    return cleaned


def validate_message_status(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a message delivery status update"""
    data = _require_object(data)
    errors = FieldErrors()
    status = _choice(data, 'status', errors, MESSAGE_STATUSES, required=True)
    metadata = data.get('metadata')
    if metadata is not None and not isinstance(metadata, dict):
        errors.add('metadata', 'Metadata must be an object')
    errors.raise_if_any()
    return _present({'status': status, 'metadata': metadata}, {'status': status, **data})


def validate_message_template(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate a message template payload"""
    data = _require_object(data)
    errors = FieldErrors()
    cleaned = {
        'name': _string(data, 'name', errors, required=not partial, min_length=3, max_length=100),
        'type': _choice(data, 'type', errors, TEMPLATE_TYPES, required=not partial),
        'content': _string(data, 'content', errors, required=not partial, min_length=10),
        'is_active': _boolean(data, 'is_active', errors),
    }
    errors.raise_if_any()
    if partial:
        return _present(cleaned, data)
    return {key: value for key, value in cleaned.items() if value is not None}


def validate_measurement_template(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate a measurement template payload"""
    data = _require_object(data)
    errors = FieldErrors()
    cleaned = {
        'name': _string(data, 'name', errors, required=not partial, min_length=3, max_length=100),
        'client_id': _reference(data, 'client_id', errors, required=not partial),
        'garment_type_id': _reference(data, 'garment_type_id', errors, required=not partial),
        'is_default': _boolean(data, 'is_default', errors),
        'notes': _string(data, 'notes', errors),
    }
    measurements = data.get('measurements')
    if (not partial or 'measurements' in data) and (not isinstance(measurements, dict) or not measurements):
        errors.add('measurements', 'Measurements cannot be empty')
    cleaned['measurements'] = measurements
    errors.raise_if_any()
    if partial:
        return _present(cleaned, data)
    return {key: value for key, value in cleaned.items() if value is not None}


# ============================================================================
# FILE UPLOADS
# ============================================================================

def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent directory traversal attacks

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    safe_name = secure_filename(filename or '')

    # If secure_filename removes everything, generate a default name
    if not safe_name:
        safe_name = 'file'

    return safe_name


def validate_image_upload(file: FileStorage, max_size: int) -> str:
    """
    Validate an uploaded image by mimetype and size

    Args:
        file: FileStorage object from request.files
        max_size: Maximum file size in bytes

    Returns:
        Sanitized filename

    Raises:
        ValidationError: missing file or unsupported type
        FileTooLargeError: file exceeds max_size
    """
    if not file or not file.filename:
        raise ValidationError('No image provided', field=getattr(file, 'name', None) or 'images')

    if (file.mimetype or '').lower() not in ALLOWED_IMAGE_MIMETYPES:
        raise ValidationError('Invalid file type.', field=file.name or 'images')

    file.stream.seek(0, os.SEEK_END)
    file_size = file.stream.tell()
    file.stream.seek(0)

    if file_size > max_size:
        raise FileTooLargeError(max_size)

    safe_filename = sanitize_filename(file.filename)
    logger.debug(f"Image validation successful: {safe_filename} ({file_size} bytes)")
    return safe_filename


class NotFoundError(Exception):
    """Raised by services when a referenced record does not exist"""
    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"{resource} not found")
