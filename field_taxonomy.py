"""
Field taxonomy for business card data.

Raw keys coming from the model, a QR vCard or the regex fallback are looked up
in the standard table first, then in the extended table. Anything else becomes
a dynamic field with a label derived from the key and a category guessed from
the key and the value.
"""
import re
from types import MappingProxyType
from typing import Optional

from field_formatting import format_field_value
from scan_fields import ScanField

DYNAMIC_CONFIDENCE = 0.6


def _entry(label: str, category: str, confidence: float):
    return MappingProxyType({"label": label, "category": category, "confidence": confidence})


STANDARD_FIELDS = MappingProxyType({
    "name": _entry("Name", "personal", 0.9),
    "fullname": _entry("Name", "personal", 0.9),
    "email": _entry("Email", "contact", 0.9),
    "phone": _entry("Phone", "contact", 0.9),
    "telephone": _entry("Phone", "contact", 0.9),
    "company": _entry("Company", "professional", 0.9),
    "organization": _entry("Company", "professional", 0.9),
    "jobtitle": _entry("Job Title", "professional", 0.9),
    "title": _entry("Job Title", "professional", 0.9),
    "position": _entry("Job Title", "professional", 0.9),
    "website": _entry("Website", "contact", 0.9),
    "url": _entry("Website", "contact", 0.9),
    "address": _entry("Address", "contact", 0.85),
})

EXTENDED_FIELDS = MappingProxyType({
    "tagline": _entry("Tagline", "professional", 0.85),
    "slogan": _entry("Tagline", "professional", 0.85),
    "motto": _entry("Tagline", "professional", 0.85),
    "linkedin": _entry("LinkedIn", "social", 0.85),
    "twitter": _entry("Twitter", "social", 0.85),
    "instagram": _entry("Instagram", "social", 0.85),
    "facebook": _entry("Facebook", "social", 0.85),
    "whatsapp": _entry("WhatsApp", "contact", 0.85),
    "telegram": _entry("Telegram", "social", 0.85),
    "education": _entry("Education", "professional", 0.8),
    "degree": _entry("Education", "professional", 0.8),
    "certification": _entry("Certification", "professional", 0.8),
    "experience": _entry("Experience", "professional", 0.8),
    "yearsexperience": _entry("Experience", "professional", 0.8),
    "skills": _entry("Skills", "professional", 0.8),
    "specialization": _entry("Specialization", "professional", 0.8),
    "languages": _entry("Languages", "personal", 0.8),
    "department": _entry("Department", "professional", 0.8),
})

SOCIAL_HINTS = ("social", "linkedin", "twitter", "instagram", "facebook", "tiktok", "youtube", "github")
CONTACT_HINTS = ("phone", "mobile", "fax", "cell", "tel", "contact")
PROFESSIONAL_HINTS = (
    "experience", "skill", "certification", "certified", "education", "degree",
    "expertise", "specialty", "award", "license", "service", "company", "office",
)
PERSONAL_HINTS = ("language", "hobby", "hobbies", "interest", "birthday", "pronoun", "nickname")


def normalize_key(key: str) -> str:
    """Case and whitespace insensitive key used for every taxonomy and dedup lookup"""
    return (key or "").strip().lower()


def lookup_key(key: str) -> str:
    """Taxonomy key: normalized, with separators removed (job_title -> jobtitle)"""
    return re.sub(r'[\s_\-]+', '', normalize_key(key))


def create_dynamic_label(key: str) -> str:
    """companyTagline -> Company Tagline, years_experience -> Years Experience"""
    spaced = re.sub(r'([A-Z])', r' \1', key or "")
    spaced = re.sub(r'[_-]', ' ', spaced)
    words = [word for word in spaced.split(' ') if word]
    return ' '.join(word[0].upper() + word[1:].lower() for word in words)


def infer_category(key: str, value: str) -> str:
    """Best guess at a category for a key outside the taxonomy"""
    key_lower = (key or "").lower()
    value_lower = (value or "").lower()

    if any(hint in key_lower for hint in SOCIAL_HINTS) or value_lower.startswith('@') \
            or 'linkedin' in value_lower or 'twitter' in value_lower:
        return "social"

    if any(hint in key_lower for hint in CONTACT_HINTS) or value_lower.startswith('+') \
            or re.search(r'\d{3,}', value_lower):
        return "contact"

    if any(hint in key_lower for hint in PROFESSIONAL_HINTS):
        return "professional"

    if any(hint in key_lower for hint in PERSONAL_HINTS):
        return "personal"

    return "other"


def classify_key(key: str):
    """Return (field type, taxonomy entry or None) for a raw key"""
    taxonomy_key = lookup_key(key)
    if taxonomy_key in STANDARD_FIELDS:
        return "standard", STANDARD_FIELDS[taxonomy_key]
    if taxonomy_key in EXTENDED_FIELDS:
        return "extended", EXTENDED_FIELDS[taxonomy_key]
    return "dynamic", None


def categorize_field(
    key: str,
    value: str,
    side: str,
    source: str,
    confidence: Optional[float] = None,
) -> ScanField:
    """Turn a raw key/value pair into a ScanField with a canonical label"""
    field_type, entry = classify_key(key)
    trimmed = (value or "").strip()

    if entry is not None:
        label = entry["label"]
        category = entry["category"]
        base_confidence = entry["confidence"]
    else:
        label = create_dynamic_label(key)
        category = infer_category(key, trimmed)
        base_confidence = DYNAMIC_CONFIDENCE

    return ScanField(
        label=label,
        value=format_field_value(label, trimmed),
        type=field_type,
        category=category,
        confidence=base_confidence if confidence is None else confidence,
        side=side,
        source=source,
        is_dynamic=field_type == "dynamic",
    )
