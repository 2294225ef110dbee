"""
Field extraction from OCR text.

The AI path asks Gemini for a JSON object of key/value pairs and runs each pair
through the taxonomy. When the model call or its answer fails, the regex
fallback pulls one email and one phone number out of the raw text.
"""
import re
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

from config import MIN_AI_TEXT_LENGTH, AI_FAILURE_COST
from cost_estimator import CostEstimator
from field_taxonomy import categorize_field
from scan_errors import AIResponseNotJSON
from scan_fields import ScanField

logger = logging.getLogger(__name__)

QR_CONFIDENCE = 0.95
REGEX_EMAIL_CONFIDENCE = 0.8
REGEX_PHONE_CONFIDENCE = 0.7

EMAIL_REGEX = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b')
PHONE_REGEX = re.compile(r'(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}')
JSON_OBJECT = re.compile(r'\{.*\}', re.DOTALL)

FRONT_CONTEXT = (
    "Front sides typically contain: name, job title, company, main contact info "
    "(email, phone), primary website, and company taglines/slogans."
)
BACK_CONTEXT = (
    "Back sides often contain: company information, taglines, social media links, "
    "secondary websites, certifications, languages spoken, detailed address, "
    "QR codes, or company descriptions."
)

FRONT_EXAMPLE = """{
      "name": "John Doe",
      "jobTitle": "Senior Engineer",
      "company": "TechSolutions Inc",
      "email": "john@techsolutions.com",
      "phone": "+1 555 123 4567",
      "companyTagline": "Innovating Your Future"
    }"""
BACK_EXAMPLE = """{
      "linkedin": "linkedin.com/in/johndoe",
      "address": "12 Main Street, Springfield",
      "certification": "PMP Certified",
      "languages": "English, Spanish, French",
      "yearsExperience": "10+ years in AI"
    }"""


def build_prompt(text: str, side: str) -> str:
    """Side-aware extraction prompt for one card face"""
    context = FRONT_CONTEXT if side == "front" else BACK_CONTEXT
    example = FRONT_EXAMPLE if side == "front" else BACK_EXAMPLE

    return f"""
    You are an expert business card information extractor analyzing the {side} side of a business card.

    CONTEXT: This is the {side.upper()} side of a business card.
    {context}

    Extract information into THREE groups:

    1. STANDARD FIELDS (always extract these when present):
    - name, email, phone, company, jobTitle, website, address

    2. EXTENDED FIELDS:
    - linkedin, twitter, instagram, facebook, whatsapp, telegram
    - tagline, education, certification, experience, skills, specialization, languages, department

    3. DYNAMIC FIELDS:
    - Create a camelCase key for any other valuable information that does not fit above,
      for example "companyDescription", "officeHours" or "awards"
    - Company slogans: "Innovating Your Future" -> "companyTagline": "Innovating Your Future"
    - Professional experience: "10+ years in AI" -> "yearsExperience": "10+ years in AI"
    - Specializations: "AI/ML Expert" -> "specialization": "AI/ML Expert"

    Respond with ONE JSON object of string values only, for example:
    {example}

    Business card {side} side text:
    ---
    {text}
    ---"""


class JSONParse(NamedTuple):
    """Tagged outcome of reading a JSON object out of model text"""
    ok: bool
    data: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None


def parse_ai_json(response_text: str) -> JSONParse:
    match = JSON_OBJECT.search(response_text or "")
    if not match:
        return JSONParse(False, reason="AI did not return a JSON object")

    try:
        data = json.loads(match.group(0))
    except ValueError as e:
        return JSONParse(False, reason=f"Failed to parse AI response JSON: {str(e)}")

    if not isinstance(data, dict):
        return JSONParse(False, reason="AI response JSON is not an object")
    return JSONParse(True, data=data)


def extract_json_object(response_text: str) -> Dict[str, Any]:
    parsed = parse_ai_json(response_text)
    if not parsed.ok:
        raise AIResponseNotJSON(parsed.reason)
    return parsed.data


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return ', '.join(_as_text(item) for item in value if _as_text(item))
    return ""


def fields_from_ai_json(data: Dict[str, Any], side: str) -> List[ScanField]:
    source = f"enhanced-gemini-ai-{side}"
    fields = []
    for key, value in data.items():
        text = _as_text(value)
        if text:
            fields.append(categorize_field(key, text, side, source))
    return fields


def convert_qr_data_to_fields(contact_data: Optional[Dict[str, Any]], side: str) -> List[ScanField]:
    """Fields from a parsed QR contact map, all tagged qr_code_<side>"""
    fields = []
    for key, value in (contact_data or {}).items():
        if isinstance(value, str) and value.strip():
            fields.append(categorize_field(key, value, side, f"qr_code_{side}", confidence=QR_CONFIDENCE))
    return fields


def extract_fields_basic(text: str, side: str) -> List[ScanField]:
    """Regex fallback: at most one email and one phone number"""
    fields: List[ScanField] = []
    if not text:
        return fields

    source = f"basic_regex_{side}"
    email_match = EMAIL_REGEX.search(text)
    if email_match:
        fields.append(categorize_field("email", email_match.group(0), side, source, REGEX_EMAIL_CONFIDENCE))

    phone_match = PHONE_REGEX.search(text)
    if phone_match:
        fields.append(categorize_field("phone", phone_match.group(0), side, source, REGEX_PHONE_CONFIDENCE))

    logger.info(f"Basic extraction found {len(fields)} fields on {side} side")
    return fields


@dataclass
class Extraction:
    fields: List[ScanField] = field(default_factory=list)
    ai_processed: bool = False
    cost: float = 0.0
    ai_error: Optional[str] = None
    method: str = "enhanced_ai_dynamic"


class AIFieldExtractor:
    """Gemini-backed extraction with the regex fallback"""

    def __init__(self, generator, cost_estimator: Optional[CostEstimator] = None):
        self.generator = generator
        self.cost_estimator = cost_estimator or CostEstimator()

    async def extract(self, text: str, side: str, qr_contact: Optional[Dict[str, Any]] = None) -> Extraction:
        qr_fields = convert_qr_data_to_fields(qr_contact, side)

        if not text or len(text.strip()) < MIN_AI_TEXT_LENGTH:
            logger.warning(f"Not enough text for AI processing on {side} side")
            return Extraction(fields=qr_fields, ai_processed=False, cost=0.0)

        try:
            response = await self.generator.generate(build_prompt(text, side))
            data = extract_json_object(response["text"])
            fields = fields_from_ai_json(data, side)
            cost = self.cost_estimator.token_cost(
                response.get("model", ""),
                response.get("input_tokens"),
                response.get("output_tokens"),
            )
            logger.info(f"AI extracted {len(fields)} fields on {side} side (+{len(qr_fields)} from QR)")
            return Extraction(fields=fields + qr_fields, ai_processed=True, cost=cost)

        except Exception as e:
            logger.error(f"AI extraction failed for {side} side, falling back to regex: {str(e)}")
            return Extraction(
                fields=extract_fields_basic(text, side) + qr_fields,
                ai_processed=False,
                cost=AI_FAILURE_COST,
                ai_error=str(e),
                method="basic_regex",
            )
