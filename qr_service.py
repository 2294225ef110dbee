"""
QR code detection on card images and classification of the decoded payload.
"""
import base64
import io
import re
import logging
from typing import Any, Dict, List, Optional

import cv2
import numpy as np
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

CORNER_NAMES = ("topLeftCorner", "topRightCorner", "bottomRightCorner", "bottomLeftCorner")


class OpenCVQRDecoder:
    """Decode a single QR code from an RGBA pixel buffer with OpenCV"""

    def __init__(self):
        self._detector = cv2.QRCodeDetector()

    def decode(self, rgba: np.ndarray) -> Optional[Dict[str, Any]]:
        bgr = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR)
        data, points, _ = self._detector.detectAndDecode(bgr)
        if points is None or not data:
            return None

        corners = np.asarray(points).reshape(-1, 2)
        location = {
            name: {"x": float(x), "y": float(y)}
            for name, (x, y) in zip(CORNER_NAMES, corners)
        }
        return {"data": data, "location": location}


def decode_rgba(image_base64: str) -> np.ndarray:
    """Decode a base64 image into an RGBA pixel array"""
    image = Image.open(io.BytesIO(base64.b64decode(image_base64)))
    image = ImageOps.exif_transpose(image)
    return np.array(image.convert('RGBA'))


class BusinessCardQR:
    """Look for a QR code on a card side and parse whatever it carries"""

    def __init__(self, decoder=None):
        self.decoder = decoder or OpenCVQRDecoder()

    def process_image(self, image_base64: str) -> Dict[str, Any]:
        try:
            rgba = decode_rgba(image_base64)
            qr_code = self.decoder.decode(rgba)

            if qr_code:
                logger.info("QR code detected (%d chars)", len(qr_code["data"]))
                return {
                    "success": True,
                    "hasQRCode": True,
                    "qrData": qr_code["data"],
                    "qrLocation": qr_code.get("location"),
                    "parsedQRData": parse_qr_payload(qr_code["data"]),
                }

            logger.info("No QR code found")
            return {
                "success": True,
                "hasQRCode": False,
                "qrData": None,
                "qrLocation": None,
                "parsedQRData": None,
            }

        except Exception as e:
            logger.error(f"QR processing failed: {str(e)}")
            return {
                "success": False,
                "hasQRCode": False,
                "qrData": None,
                "qrLocation": None,
                "parsedQRData": None,
                "error": str(e),
            }


def parse_qr_payload(payload: str) -> Dict[str, Any]:
    """Classify a QR payload as vCard, URL, structured contact text or plain text"""
    try:
        if payload.startswith('BEGIN:VCARD'):
            return parse_vcard(payload)

        if payload.startswith('http://') or payload.startswith('https://'):
            return {"type": "url", "url": payload}

        if '@' in payload and '\n' in payload:
            return parse_structured_contact(payload)

        return {"type": "text", "data": payload}

    except Exception as e:
        return {"type": "raw", "data": payload, "parseError": str(e)}


def _vcard_lines(vcard: str) -> List[str]:
    text = vcard.replace('\r\n', '\n').replace('\r', '\n')
    lines: List[str] = []
    for line in text.split('\n'):
        # folded continuation lines start with whitespace
        if line[:1] in (' ', '\t') and lines:
            lines[-1] += line[1:]
        else:
            lines.append(line.strip())
    return lines


def parse_vcard(vcard: str) -> Dict[str, Any]:
    contact: Dict[str, str] = {}
    given = family = None

    for line in _vcard_lines(vcard):
        if ':' not in line:
            continue
        key, value = line.split(':', 1)
        # EMAIL;TYPE=WORK or item1.EMAIL
        prop = key.split(';', 1)[0].split('.')[-1].upper()
        value = value.strip()
        if not value:
            continue

        if prop == 'FN':
            contact['name'] = value
        elif prop == 'N':
            parts = value.split(';')
            family = parts[0].strip() or None
            given = parts[1].strip() if len(parts) > 1 and parts[1].strip() else None
        elif prop == 'EMAIL':
            contact.setdefault('email', value)
        elif prop == 'TEL':
            contact.setdefault('phone', value)
        elif prop == 'ORG':
            contact['company'] = ' '.join(part for part in value.split(';') if part).strip()
        elif prop == 'TITLE':
            contact['jobTitle'] = value
        elif prop == 'URL':
            contact.setdefault('website', value)
        elif prop == 'ADR':
            address = ', '.join(part.strip() for part in value.split(';') if part.strip())
            if address:
                contact['address'] = address

    if 'name' not in contact and (given or family):
        contact['name'] = ' '.join(part for part in (given, family) if part)

    return {"type": "vcard", "contactData": contact}


def parse_structured_contact(data: str) -> Dict[str, Any]:
    contact: Dict[str, str] = {}

    for line in (line.strip() for line in data.split('\n')):
        if not line:
            continue
        if '@' in line:
            contact.setdefault('email', line)
        elif re.match(r'^\+?\d', line):
            contact.setdefault('phone', line)
        elif 2 <= len(line) <= 50:
            if 'name' not in contact:
                contact['name'] = line
            elif 'company' not in contact:
                contact['company'] = line

    return {"type": "structured", "contactData": contact}
