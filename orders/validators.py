import json
import re

from .domain import OrderRequest
from .errors import ValidationError

MAX_CUSTOMER_NAME = 50
MAX_NOTES = 200

# Australian mobile: 04 followed by eight ASCII digits
_PHONE_RE = re.compile(r"04[0-9]{8}")
_WHITESPACE_RE = re.compile(r"\s+")


class BadJSON(Exception):
    """Raised when the request body is not valid JSON."""
    pass


def parse_json_body(request):
    """
    Decode the request body as JSON and return a dict.
    Raises BadJSON on failure.
    """
    try:
        body = request.body.decode("utf-8") if request.body else "{}"
        data = json.loads(body or "{}")
    except (UnicodeDecodeError, ValueError) as e:
        raise BadJSON(f"invalid JSON: {e}")
    if not isinstance(data, dict):
        raise BadJSON("JSON body must be an object")
    return data


def normalize_phone(phone: str) -> str:
    return _WHITESPACE_RE.sub("", phone or "")


def validate_order_request(customer_name, phone, notes=None) -> OrderRequest:
    """
    Validate a create-order payload.
    - customer_name: required, trimmed, at most 50 characters
    - phone: whitespace stripped, must match 04XXXXXXXX
    - notes: optional, trimmed, at most 200 characters
    Raises ValidationError on the first failing field.
    """
    name = customer_name.strip() if isinstance(customer_name, str) else ""
    if not name:
        raise ValidationError("customerName", ValidationError.EMPTY_CUSTOMER_NAME, "Customer name is required")
    if len(name) > MAX_CUSTOMER_NAME:
        raise ValidationError(
            "customerName",
            ValidationError.CUSTOMER_NAME_TOO_LONG,
            f"Customer name must be at most {MAX_CUSTOMER_NAME} characters",
        )

    normalized = normalize_phone(phone if isinstance(phone, str) else "")
    if not _PHONE_RE.fullmatch(normalized):
        raise ValidationError(
            "phone",
            ValidationError.INVALID_PHONE_FORMAT,
            "Please enter a valid Australian mobile number (e.g., 0412345678)",
        )

    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes", ValidationError.INVALID_NOTES, "Notes must be text")
    text = (notes or "").strip()
    if len(text) > MAX_NOTES:
        raise ValidationError("notes", ValidationError.NOTES_TOO_LONG, f"Notes must be at most {MAX_NOTES} characters")

    return OrderRequest(customer_name=name, phone=normalized, notes=text)
