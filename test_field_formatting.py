import os
import sys
import unittest

# Add current directory to path so we can import modules
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from field_formatting import (
    format_field_value,
    format_phone,
    format_website_url,
    normalize_url,
    validate_field,
    validate_field_value,
)
from scan_fields import ScanField


class TestFieldFormatting(unittest.TestCase):
    def test_email_is_lowercased(self):
        self.assertEqual(format_field_value("Email", "  Jane@ACME.com "), "jane@acme.com")

    def test_phone_grouping(self):
        self.assertEqual(format_phone("555.123.4567"), "(555) 123-4567")
        self.assertEqual(format_phone("(555) 123 4567"), "(555) 123-4567")
        self.assertEqual(format_phone("+1 555 123 4567"), "+15551234567")

    def test_url_completion(self):
        self.assertEqual(format_website_url("acme.com"), "https://acme.com")
        self.assertEqual(format_website_url("http://acme.com"), "http://acme.com")
        self.assertEqual(format_website_url("not a url"), "not a url")
        self.assertEqual(format_website_url("@jdoe", "twitter"), "https://twitter.com/jdoe")
        self.assertEqual(format_website_url("in/jdoe", "linkedin"), "https://www.linkedin.com/in/jdoe")
        self.assertEqual(
            format_website_url("linkedin.com/in/jdoe", "linkedin"),
            "https://linkedin.com/in/jdoe",
        )

    def test_title_case_labels(self):
        self.assertEqual(format_field_value("Company", "acme CORP"), "Acme Corp")
        self.assertEqual(format_field_value("job title", "chief technology officer"), "Chief Technology Officer")

    def test_other_labels_are_trimmed_only(self):
        self.assertEqual(format_field_value("Tagline", "  we build THINGS  "), "we build THINGS")


class TestFieldValidation(unittest.TestCase):
    def test_email(self):
        result = validate_field_value("Email", "Jane@Acme.com", "contact")
        self.assertTrue(result["isValid"])
        self.assertEqual(result["normalizedValue"], "jane@acme.com")

        result = validate_field_value("Email", "jane@", "contact")
        self.assertFalse(result["isValid"])
        self.assertIn("Invalid email format", result["errors"])

    def test_phone_length(self):
        self.assertTrue(validate_field_value("Phone", "(555) 123-4567", "contact")["isValid"])
        result = validate_field_value("Phone", "123", "contact")
        self.assertEqual(result["errors"], ["Phone number length invalid"])
        self.assertFalse(validate_field_value("Phone", "+12345678901234567", "contact")["isValid"])

    def test_url(self):
        self.assertEqual(normalize_url("acme.com"), "https://acme.com/")
        self.assertEqual(normalize_url("https://acme.com/team?x=1"), "https://acme.com/team?x=1")
        self.assertIsNone(normalize_url("http://bad host.com"))
        self.assertIsNone(normalize_url("ftp://acme.com"))

        result = validate_field_value("Website", "acme.com", "contact")
        self.assertTrue(result["isValid"])
        self.assertEqual(result["normalizedValue"], "https://acme.com/")

        result = validate_field_value("Website", "acme dot com", "contact")
        self.assertEqual(result["errors"], ["Invalid URL format"])
        self.assertIsNone(normalize_url("https://"))
        self.assertIsNone(normalize_url("https://a..b.com"))

    def test_url_hosts_that_parse_are_valid(self):
        result = validate_field_value("Website", "https://bücher.de/katalog", "contact")
        self.assertTrue(result["isValid"])
        self.assertEqual(result["normalizedValue"], "https://xn--bcher-kva.de/katalog")

        result = validate_field_value("Website", "https://intranet", "contact")
        self.assertTrue(result["isValid"])
        self.assertEqual(result["normalizedValue"], "https://intranet/")

        self.assertEqual(normalize_url("http://localhost:8080/app"), "http://localhost:8080/app")

    def test_category_checks(self):
        result = validate_field_value("Fax", "12", "contact")
        self.assertEqual(result["errors"], ["Contact information too short"])

        result = validate_field_value("Twitter", "jdoe", "social")
        self.assertEqual(result["errors"], ["Social media link appears incomplete"])

    def test_validate_field_adjusts_confidence(self):
        field = validate_field(ScanField(label="Email", value="not-an-email", category="contact", confidence=0.9))
        self.assertFalse(field.is_valid)
        self.assertAlmostEqual(field.adjusted_confidence, 0.63)
        self.assertEqual(field.normalized_value, "not-an-email")

        field = validate_field(ScanField(label="Email", value="jane@acme.com", category="contact", confidence=0.9))
        self.assertTrue(field.is_valid)
        self.assertEqual(field.adjusted_confidence, 0.9)
        self.assertLessEqual(field.adjusted_confidence, field.confidence)


if __name__ == "__main__":
    unittest.main()
