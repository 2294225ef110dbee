"""
Text detection on business card images, backed by Tesseract.
"""
import base64
import io
import logging
from typing import Any, Dict, List, Optional, Tuple

import pytesseract
from pytesseract import Output
from PIL import Image, ImageOps

from config import OCR_LANGUAGE_HINTS, TESSERACT_CMD

logger = logging.getLogger(__name__)

if TESSERACT_CMD:
    pytesseract.pytesseract.tesseract_cmd = TESSERACT_CMD

# ISO 639-1 hints -> Tesseract traineddata names
TESSERACT_LANGUAGES = {
    "en": "eng",
    "es": "spa",
    "fr": "fra",
    "it": "ita",
    "de": "deu",
    "pt": "por",
    "nl": "nld",
    "vi": "vie",
    "zh": "chi_sim",
    "ja": "jpn",
    "ko": "kor",
    "ar": "ara",
    "ru": "rus",
}

DEFAULT_CONFIDENCE = 0.5


class TesseractTextDetector:
    """Word-level document text detection with pytesseract"""

    def __init__(self, config: str = "--oem 3 --psm 3"):
        self.config = config
        self._installed: Optional[List[str]] = None

    def _installed_languages(self) -> List[str]:
        if self._installed is None:
            try:
                self._installed = pytesseract.get_languages(config='')
            except Exception as e:
                logger.warning(f"Could not list Tesseract languages: {str(e)}")
                self._installed = ["eng"]
        return self._installed

    def resolve_languages(self, language_hints: List[str]) -> str:
        """Map hint codes to installed Tesseract languages; English is always kept"""
        installed = self._installed_languages()
        languages = ["eng"]
        for hint in language_hints:
            lang = TESSERACT_LANGUAGES.get(hint.lower())
            if lang and lang in installed and lang not in languages:
                languages.append(lang)
        return '+'.join(languages)

    def detect(self, image: Image.Image, language_hints: List[str]) -> Dict[str, Any]:
        ocr_data = pytesseract.image_to_data(
            image,
            config=self.config,
            lang=self.resolve_languages(language_hints),
            output_type=Output.DICT
        )

        tokens: List[Dict[str, Any]] = []
        line_map: Dict[Tuple[int, int, int], List[str]] = {}
        texts = ocr_data.get("text", [])

        for idx, word in enumerate(texts):
            word_clean = (word or "").strip()
            if not word_clean:
                continue

            try:
                conf = float(ocr_data["conf"][idx])
            except (KeyError, IndexError, ValueError, TypeError):
                conf = -1.0

            tokens.append({
                "text": word_clean,
                "confidence": round(conf / 100, 4) if conf >= 0 else None,
                "boundingBox": {
                    "x": ocr_data["left"][idx],
                    "y": ocr_data["top"][idx],
                    "width": ocr_data["width"][idx],
                    "height": ocr_data["height"][idx],
                },
            })

            key = (
                ocr_data["block_num"][idx],
                ocr_data["par_num"][idx],
                ocr_data["line_num"][idx],
            )
            line_map.setdefault(key, []).append(word_clean)

        # Sort keys to maintain reading order
        lines = [' '.join(words) for _, words in sorted(line_map.items(), key=lambda item: item[0])]
        return {"text": '\n'.join(lines), "tokens": tokens}


def load_image(image_base64: str) -> Image.Image:
    """Decode a base64 payload into an upright RGB image"""
    image = Image.open(io.BytesIO(base64.b64decode(image_base64)))
    image = ImageOps.exif_transpose(image)
    if image.mode != 'RGB':
        image = image.convert('RGB')
    return image


def ensure_ocr_size(
    image: Image.Image,
    min_dimension: int = 1200,
    max_dimension: int = 2000,
) -> Image.Image:
    """Resize image so it falls within the ideal OCR size range"""
    width, height = image.size
    smallest_side = min(width, height)
    largest_side = max(width, height)
    if smallest_side < min_dimension:
        scale_factor = min(min_dimension / smallest_side, max_dimension / largest_side)
    elif largest_side > max_dimension:
        scale_factor = max_dimension / largest_side
    else:
        return image

    new_size = (max(1, int(width * scale_factor)), max(1, int(height * scale_factor)))
    if new_size == image.size:
        return image
    logger.info(f"Resizing image from {width}x{height} to {new_size[0]}x{new_size[1]}")
    return image.resize(new_size, Image.LANCZOS)


def mean_confidence(tokens: List[Dict[str, Any]]) -> float:
    """Mean of the numeric token confidences, 0.5 when none were reported"""
    scores = [
        t["confidence"] for t in tokens
        if isinstance(t.get("confidence"), (int, float)) and not isinstance(t.get("confidence"), bool)
    ]
    if not scores:
        return DEFAULT_CONFIDENCE
    return round(sum(scores) / len(scores), 2)


class BusinessCardOCR:
    """Run text detection on one card side; failures degrade to an empty result"""

    def __init__(self, detector=None, language_hints: Optional[List[str]] = None, provider: str = "tesseract"):
        self.detector = detector or TesseractTextDetector()
        self.language_hints = language_hints or OCR_LANGUAGE_HINTS
        self.provider = provider

    def process_image(self, image_base64: str) -> Dict[str, Any]:
        try:
            image = ensure_ocr_size(load_image(image_base64))
            detection = self.detector.detect(image, self.language_hints)

            text = detection.get("text") or ""
            blocks = detection.get("tokens") or []
            confidence = mean_confidence(blocks)

            logger.info(f"OCR extracted {len(text)} characters from {len(blocks)} tokens (confidence {confidence})")
            return {
                "success": True,
                "text": text,
                "blocks": blocks,
                "confidence": confidence,
                "provider": self.provider,
                "wordCount": len(text.split()),
                "lineCount": len([line for line in text.split('\n') if line.strip()]),
            }

        except Exception as e:
            logger.error(f"OCR processing failed: {str(e)}")
            return {
                "success": False,
                "text": "",
                "confidence": 0,
                "blocks": [],
                "provider": self.provider,
                "error": str(e),
            }
