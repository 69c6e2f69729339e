"""
Input Sanitization Module

Cleans text and numbers coming from request bodies and imported plan files
before they are stored.
"""

import math
import re

_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f-\x9f]')


def sanitize_text(text, max_length=10000):
    """
    Sanitize free text for storage.

    Strips surrounding whitespace and control characters. Responses are JSON,
    so markup is left for the client to escape when it renders.

    Args:
        text: The text to sanitize (can be None)
        max_length: Maximum allowed length (default 10000)

    Returns:
        Sanitized string, truncated if necessary
    """
    if text is None:
        return ''

    if not isinstance(text, str):
        text = str(text)

    text = _CONTROL_CHARS.sub('', text).strip()

    if len(text) > max_length:
        text = text[:max_length]

    return text


def sanitize_name(name, default='', max_length=200):
    """
    Sanitize a plan, day, meal or item name.

    Collapses runs of whitespace and falls back to `default` when nothing is
    left after cleaning.
    """
    if name is None or isinstance(name, (dict, list)):
        return default

    name = sanitize_text(name, max_length=max_length)
    name = re.sub(r'\s+', ' ', name)

    return name or default


def safe_float(value, default=0.0, min_val=None, max_val=None):
    """Safely parse a float value with optional bounds."""
    try:
        result = float(value) if value not in (None, '') else default
        if math.isnan(result) or math.isinf(result):
            return default
        if min_val is not None:
            result = max(min_val, result)
        if max_val is not None:
            result = min(max_val, result)
        return result
    except (ValueError, TypeError):
        return default


def safe_int(value, default=0, min_val=None, max_val=None):
    """Safely parse an integer value with optional bounds. Floats are rounded."""
    result = safe_float(value, default=None)
    if result is None:
        return default
    result = int(round(result))
    if min_val is not None:
        result = max(min_val, result)
    if max_val is not None:
        result = min(max_val, result)
    return result


def safe_bool(value):
    """Interpret form-style and JSON truthy values."""
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)
