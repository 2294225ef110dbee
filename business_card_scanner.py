"""
Per-side business card pipeline: OCR and QR in parallel, field extraction,
validation and deduplication, structured into a ScanResult.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from deduplication import deduplicate_fields
from field_extractor import AIFieldExtractor
from field_formatting import validate_field
from image_sanitizer import sanitize_image
from ocr_service import BusinessCardOCR
from qr_service import BusinessCardQR
from scan_fields import ScanField, ScanResult

logger = logging.getLogger(__name__)

FALLBACK_LABELS = ("Name", "Email", "Phone", "Company", "Job Title")


def fallback_result(side: str, error_message: str) -> ScanResult:
    """Placeholder fields plus a Note, returned when a side's pipeline throws"""
    fields = [
        ScanField(label=label, value="", type="standard", confidence=0.0, side=side, source="error_fallback")
        for label in FALLBACK_LABELS
    ]
    fields.append(ScanField(
        label="Note",
        value=f"Scan failed: {error_message}. Please fill manually.",
        type="dynamic",
        category="other",
        confidence=1.0,
        side=side,
        source="error_fallback",
        is_dynamic=True,
    ))
    return ScanResult(
        success=False,
        side=side,
        parsed_fields=fields,
        processing_method="error_fallback",
        error=error_message,
    )


def _qr_contact(qr_result: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    parsed = qr_result.get("parsedQRData") if qr_result.get("hasQRCode") else None
    if parsed:
        return parsed.get("contactData")
    return None


class BusinessCardScanner:
    """Extract contact fields from one side of a business card"""

    def __init__(self, extractor: AIFieldExtractor, ocr: Optional[BusinessCardOCR] = None, qr: Optional[BusinessCardQR] = None):
        self.extractor = extractor
        self.ocr = ocr or BusinessCardOCR()
        self.qr = qr or BusinessCardQR()

    async def scan_side(self, image_base64: str, side: str, request_id: str = "") -> ScanResult:
        try:
            image = sanitize_image(image_base64)

            # Tesseract and OpenCV block, so both run off the event loop
            ocr_result, qr_result = await asyncio.gather(
                asyncio.to_thread(self.ocr.process_image, image),
                asyncio.to_thread(self.qr.process_image, image),
            )
            logger.info(
                f"[{request_id}] {side}: OCR {'ok' if ocr_result.get('success') else 'failed'}, "
                f"QR {'found' if qr_result.get('hasQRCode') else 'none'}"
            )

            extraction = await self.extractor.extract(
                ocr_result.get("text") or "",
                side,
                _qr_contact(qr_result),
            )

            fields = deduplicate_fields([validate_field(f) for f in extraction.fields])
            result = ScanResult(
                success=bool(ocr_result.get("success") or qr_result.get("success")),
                side=side,
                parsed_fields=fields,
                has_qr_code=bool(qr_result.get("hasQRCode")),
                ai_processed=extraction.ai_processed,
                ai_error=extraction.ai_error,
                cost=extraction.cost,
                processing_method=extraction.method,
            )
            logger.info(f"[{request_id}] {side} side completed: {len(fields)} fields")
            return result

        except Exception as e:
            logger.error(f"[{request_id}] Scan error on {side} side: {str(e)}")
            return fallback_result(side, str(e))
