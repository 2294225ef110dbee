"""
Data carried through a card scan: extracted fields and per-side / merged results.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

SIDES = ("front", "back")

FIELD_TYPES = ("standard", "extended", "dynamic")
CATEGORIES = ("personal", "professional", "contact", "social", "other")

INVALID_CONFIDENCE_FACTOR = 0.7


@dataclass
class ScanField:
    """One extracted datum from a card side"""
    label: str
    value: str
    type: str = "standard"
    category: str = "other"
    confidence: float = 0.0
    side: str = "front"
    source: str = ""
    is_dynamic: bool = False
    normalized_value: Optional[str] = None
    adjusted_confidence: Optional[float] = None
    is_valid: bool = True
    validation_errors: List[str] = field(default_factory=list)
    alternative_values: List[Dict[str, Any]] = field(default_factory=list)
    sides: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.normalized_value is None:
            self.normalized_value = self.value
        if self.adjusted_confidence is None:
            self.adjusted_confidence = self.confidence

    def apply_validation(self, is_valid: bool, errors: List[str], normalized_value: Optional[str]):
        self.is_valid = is_valid
        self.validation_errors = list(errors)
        self.normalized_value = normalized_value or self.value
        if is_valid:
            self.adjusted_confidence = self.confidence
        else:
            self.adjusted_confidence = self.confidence * INVALID_CONFIDENCE_FACTOR

    def has_data(self) -> bool:
        return bool(self.value and self.value.strip())

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "label": self.label,
            "value": self.value,
            "normalizedValue": self.normalized_value,
            "type": self.type,
            "category": self.category,
            "confidence": self.confidence,
            "adjustedConfidence": self.adjusted_confidence,
            "isDynamic": self.is_dynamic,
            "isValid": self.is_valid,
            "validationErrors": list(self.validation_errors),
            "source": self.source,
            "side": self.side,
        }
        if self.alternative_values:
            data["alternativeValues"] = [dict(alt) for alt in self.alternative_values]
        if self.sides:
            data["sides"] = list(self.sides)
        return data


@dataclass
class ScanResult:
    """Outcome of the pipeline for a single card side"""
    success: bool
    side: str
    parsed_fields: List[ScanField] = field(default_factory=list)
    has_qr_code: bool = False
    ai_processed: bool = False
    ai_error: Optional[str] = None
    cost: float = 0.0
    processing_method: str = "enhanced_ai_dynamic"
    error: Optional[str] = None
    processed_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    @property
    def dynamic_fields_count(self) -> int:
        return sum(1 for f in self.parsed_fields if f.type == "dynamic")

    @property
    def standard_fields_count(self) -> int:
        return sum(1 for f in self.parsed_fields if f.type == "standard")

    @property
    def fields_with_data(self) -> int:
        return sum(1 for f in self.parsed_fields if f.has_data())

    @property
    def confidence(self) -> float:
        return overall_confidence(self.parsed_fields)

    def metadata(self) -> Dict[str, Any]:
        data = {
            "hasQRCode": self.has_qr_code,
            "fieldsCount": len(self.parsed_fields),
            "fieldsWithData": self.fields_with_data,
            "dynamicFieldsCount": self.dynamic_fields_count,
            "standardFieldsCount": self.standard_fields_count,
            "confidence": self.confidence,
            "aiProcessed": self.ai_processed,
            "side": self.side,
            "processedAt": self.processed_at,
            "processingMethod": self.processing_method,
            "cost": self.cost,
        }
        if self.ai_error:
            data["aiError"] = self.ai_error
        if self.error:
            data["note"] = f"Scanning error: {self.error}"
        return data

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "parsedFields": [f.to_dict() for f in self.parsed_fields],
            "metadata": self.metadata(),
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class MergedScanResult:
    """Deduplicated union of every processed side"""
    success: bool
    parsed_fields: List[ScanField] = field(default_factory=list)
    has_qr_code: bool = False
    dynamic_fields_count: int = 0

    @property
    def fields_count(self) -> int:
        return len(self.parsed_fields)

    def metadata(self) -> Dict[str, Any]:
        return {
            "hasQRCode": self.has_qr_code,
            "dynamicFieldsCount": self.dynamic_fields_count,
            "fieldsCount": self.fields_count,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "parsedFields": [f.to_dict() for f in self.parsed_fields],
            "metadata": self.metadata(),
        }


def overall_confidence(fields: List[ScanField]) -> float:
    """Mean confidence of the fields that carry a value, rounded to 2 decimals"""
    scored = [f.confidence for f in fields if f.has_data() and f.confidence]
    if not scored:
        return 0.0
    return round(sum(scored) / len(scored), 2)
