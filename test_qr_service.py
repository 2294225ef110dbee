import base64
import io
import os
import sys
import unittest

from PIL import Image

# Add current directory to path so we can import modules
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from qr_service import BusinessCardQR, parse_qr_payload

VCARD = "\r\n".join([
    "BEGIN:VCARD",
    "VERSION:3.0",
    "N:Doe;Jane;;;",
    "FN:Jane Doe",
    "ORG:Acme Corp",
    "TITLE:CTO",
    "TEL;TYPE=WORK:+1 555 123 4567",
    "TEL;TYPE=CELL:+1 555 999 0000",
    "EMAIL;TYPE=INTERNET:jane@acme.com",
    "URL:https://acme.com",
    "ADR;TYPE=WORK:;;1 Main St;Springfield;IL;62701;USA",
    "END:VCARD",
])


def png_base64(size=(40, 40)):
    buffer = io.BytesIO()
    Image.new("RGB", size, "white").save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class FakeDecoder:
    def __init__(self, result=None):
        self.result = result
        self.shapes = []

    def decode(self, rgba):
        self.shapes.append(rgba.shape)
        return self.result


class TestQRPayloadParser(unittest.TestCase):
    def test_vcard(self):
        parsed = parse_qr_payload(VCARD)
        self.assertEqual(parsed["type"], "vcard")
        self.assertEqual(parsed["contactData"], {
            "name": "Jane Doe",
            "company": "Acme Corp",
            "jobTitle": "CTO",
            "phone": "+1 555 123 4567",
            "email": "jane@acme.com",
            "website": "https://acme.com",
            "address": "1 Main St, Springfield, IL, 62701, USA",
        })

    def test_vcard_name_from_n_when_fn_missing(self):
        parsed = parse_qr_payload("BEGIN:VCARD\nN:Doe;Jane\nEMAIL:jane@acme.com\nEND:VCARD")
        self.assertEqual(parsed["contactData"]["name"], "Jane Doe")

    def test_url(self):
        self.assertEqual(parse_qr_payload("https://acme.com/jane"), {"type": "url", "url": "https://acme.com/jane"})

    def test_structured_text(self):
        parsed = parse_qr_payload("Jane Doe\nAcme Corp\njane@acme.com\n+1 555 123 4567\nSpringfield Office")
        self.assertEqual(parsed["type"], "structured")
        self.assertEqual(parsed["contactData"], {
            "name": "Jane Doe",
            "company": "Acme Corp",
            "email": "jane@acme.com",
            "phone": "+1 555 123 4567",
        })

    def test_structured_line_length_bounds(self):
        parsed = parse_qr_payload("HP\njo@hp.com\nAcme Corp")
        self.assertEqual(parsed["contactData"], {"name": "HP", "email": "jo@hp.com", "company": "Acme Corp"})

        longest = "A" * 50
        parsed = parse_qr_payload(f"X\n{'B' * 51}\n{longest}\njo@hp.com")
        self.assertEqual(parsed["contactData"], {"name": longest, "email": "jo@hp.com"})

    def test_plain_text(self):
        self.assertEqual(parse_qr_payload("WIFI:S:guest;;"), {"type": "text", "data": "WIFI:S:guest;;"})
        # an @ without a newline is not structured contact data
        self.assertEqual(parse_qr_payload("jane@acme.com")["type"], "text")

    def test_never_raises(self):
        parsed = parse_qr_payload(None)
        self.assertEqual(parsed["type"], "raw")
        self.assertIn("parseError", parsed)


class TestBusinessCardQR(unittest.TestCase):
    def test_detected_code_is_parsed(self):
        decoder = FakeDecoder({"data": "https://acme.com", "location": {"topLeftCorner": {"x": 1.0, "y": 2.0}}})
        result = BusinessCardQR(decoder=decoder).process_image(png_base64())

        self.assertTrue(result["success"])
        self.assertTrue(result["hasQRCode"])
        self.assertEqual(result["qrData"], "https://acme.com")
        self.assertEqual(result["parsedQRData"]["type"], "url")
        self.assertEqual(decoder.shapes, [(40, 40, 4)])

    def test_no_code(self):
        result = BusinessCardQR(decoder=FakeDecoder(None)).process_image(png_base64())
        self.assertTrue(result["success"])
        self.assertFalse(result["hasQRCode"])
        self.assertIsNone(result["parsedQRData"])

    def test_undecodable_image_degrades(self):
        bad_image = base64.b64encode(b"definitely not an image" * 10).decode("ascii")
        result = BusinessCardQR(decoder=FakeDecoder(None)).process_image(bad_image)
        self.assertFalse(result["success"])
        self.assertFalse(result["hasQRCode"])
        self.assertIn("error", result)

    def test_opencv_decoder_on_blank_image(self):
        result = BusinessCardQR().process_image(png_base64((200, 200)))
        self.assertTrue(result["success"])
        self.assertFalse(result["hasQRCode"])


if __name__ == "__main__":
    unittest.main()
