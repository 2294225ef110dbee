"""
Value formatting and structural validation for extracted card fields.
Both are keyed by the canonical field label, case-insensitively.
"""
import re
from typing import Any, Dict, List
from urllib.parse import urlsplit

URL_LABELS = {"website", "linkedin", "twitter", "instagram", "facebook"}
TITLE_CASE_LABELS = {"name", "company", "job title"}

PHONE_STRIP = re.compile(r'[\s\-().]')
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

LINKEDIN_PROFILE = "https://www.linkedin.com/in/"
TWITTER_PROFILE = "https://twitter.com/"


def format_website_url(url: str, label: str = "website") -> str:
    """Complete a URL-ish value; bare LinkedIn/Twitter handles get the profile path"""
    if not url or not isinstance(url, str):
        return ""

    trimmed = url.strip()
    if trimmed.startswith("http://") or trimmed.startswith("https://"):
        return trimmed

    label_key = label.lower()
    if label_key in ("linkedin", "twitter") and "." not in trimmed and " " not in trimmed:
        handle = trimmed.lstrip("@").strip("/")
        if label_key == "linkedin":
            if handle.startswith("in/"):
                handle = handle[3:]
            return f"{LINKEDIN_PROFILE}{handle}"
        return f"{TWITTER_PROFILE}{handle}"

    if "." in trimmed and " " not in trimmed:
        return f"https://{trimmed}"

    return trimmed


def format_phone(value: str) -> str:
    stripped = PHONE_STRIP.sub('', value)
    match = re.fullmatch(r'(\d{3})(\d{3})(\d{4})', stripped)
    if match:
        return f"({match.group(1)}) {match.group(2)}-{match.group(3)}"
    return stripped


def title_case(value: str) -> str:
    return ' '.join(word[0].upper() + word[1:].lower() for word in value.split())


def format_field_value(label: str, value: str) -> str:
    """Apply the formatting rule for a canonical label"""
    if value is None:
        return ""
    label_key = (label or "").strip().lower()

    if label_key == "email":
        return value.strip().lower()
    if label_key == "phone":
        return format_phone(value)
    if label_key in URL_LABELS:
        return format_website_url(value, label_key)
    if label_key in TITLE_CASE_LABELS:
        return title_case(value)
    return value.strip()


def normalize_url(value: str):
    """Absolute form of a URL, or None if it cannot be parsed as one"""
    candidate = value.strip()
    if not re.match(r'^[a-zA-Z][a-zA-Z0-9+.-]*://', candidate):
        candidate = f"https://{candidate}"
    if re.search(r'\s', candidate):
        return None

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError:
        return None

    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None

    # Internationalized hosts are kept in their ASCII (punycode) form
    try:
        host = parts.hostname.encode("idna").decode("ascii")
    except UnicodeError:
        return None

    if ':' in host:
        host = f"[{host}]"
    netloc = host if port is None else f"{host}:{port}"
    normalized = f"{parts.scheme}://{netloc}{parts.path or '/'}"
    if parts.query:
        normalized += f"?{parts.query}"
    if parts.fragment:
        normalized += f"#{parts.fragment}"
    return normalized


def validate_field_value(label: str, value: str, category: str = "other") -> Dict[str, Any]:
    """Structural checks for one field; returns isValid, errors and normalizedValue"""
    errors: List[str] = []
    value = value or ""
    normalized = value
    label_key = (label or "").strip().lower()

    if label_key == "email":
        if EMAIL_PATTERN.match(value):
            normalized = value.strip().lower()
        else:
            errors.append("Invalid email format")

    elif label_key == "phone":
        digits = re.sub(r'\D', '', PHONE_STRIP.sub('', value))
        if len(digits) < 10 or len(digits) > 15:
            errors.append("Phone number length invalid")

    elif label_key in URL_LABELS:
        parsed = normalize_url(value)
        if parsed is None:
            errors.append("Invalid URL format")
        else:
            normalized = parsed

    if category == "contact" and len(value.strip()) < 3:
        errors.append("Contact information too short")
    if category == "social" and "." not in value and "/" not in value:
        errors.append("Social media link appears incomplete")

    return {
        "isValid": not errors,
        "errors": errors,
        "normalizedValue": normalized,
    }


def validate_field(field):
    """Validate a ScanField in place and return it"""
    result = validate_field_value(field.label, field.value, field.category)
    field.apply_validation(result["isValid"], result["errors"], result["normalizedValue"])
    return field
