import os
import sys
import unittest

# Add current directory to path so we can import modules
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from field_taxonomy import (
    categorize_field,
    classify_key,
    create_dynamic_label,
    infer_category,
    normalize_key,
)


class TestFieldTaxonomy(unittest.TestCase):
    def test_standard_keys_ignore_case_and_whitespace(self):
        for key in ("email", "EMAIL", "  Email  "):
            field = categorize_field(key, "jane@acme.com", "front", "test")
            self.assertEqual(field.label, "Email")
            self.assertEqual(field.type, "standard")
            self.assertEqual(field.category, "contact")
            self.assertFalse(field.is_dynamic)

    def test_standard_aliases(self):
        self.assertEqual(classify_key("telephone")[1]["label"], "Phone")
        self.assertEqual(classify_key("organization")[1]["label"], "Company")
        self.assertEqual(classify_key("jobTitle")[1]["label"], "Job Title")
        self.assertEqual(classify_key("job_title")[1]["label"], "Job Title")
        self.assertEqual(classify_key("position")[1]["label"], "Job Title")
        self.assertEqual(classify_key("url")[1]["label"], "Website")
        self.assertEqual(classify_key("address")[1]["confidence"], 0.85)

    def test_extended_keys(self):
        field_type, entry = classify_key("LinkedIn")
        self.assertEqual(field_type, "extended")
        self.assertEqual(entry["category"], "social")

        field_type, entry = classify_key("yearsExperience")
        self.assertEqual(field_type, "extended")
        self.assertEqual(entry["label"], "Experience")

        field_type, entry = classify_key("motto")
        self.assertEqual(entry["label"], "Tagline")

    def test_taxonomy_keys_never_become_dynamic(self):
        for key in ("name", "fullName", "website", "tagline", "whatsapp", "department"):
            self.assertNotEqual(classify_key(key)[0], "dynamic", key)

    def test_dynamic_field(self):
        field = categorize_field("companyTagline", "  Innovating Your Future ", "back", "enhanced-gemini-ai-back")
        self.assertEqual(field.label, "Company Tagline")
        self.assertEqual(field.type, "dynamic")
        self.assertTrue(field.is_dynamic)
        self.assertEqual(field.confidence, 0.6)
        self.assertEqual(field.category, "professional")
        self.assertEqual(field.value, "Innovating Your Future")
        self.assertEqual(field.side, "back")

    def test_values_are_formatted(self):
        self.assertEqual(categorize_field("name", "jane DOE", "front", "t").value, "Jane Doe")
        self.assertEqual(categorize_field("phone", "555.123.4567", "front", "t").value, "(555) 123-4567")
        self.assertEqual(
            categorize_field("linkedin", "janedoe", "front", "t").value,
            "https://www.linkedin.com/in/janedoe",
        )

    def test_explicit_confidence_overrides_table(self):
        field = categorize_field("email", "jane@acme.com", "front", "qr_code_front", confidence=0.95)
        self.assertEqual(field.confidence, 0.95)

    def test_create_dynamic_label(self):
        self.assertEqual(create_dynamic_label("officeHours"), "Office Hours")
        self.assertEqual(create_dynamic_label("years_experience"), "Years Experience")
        self.assertEqual(create_dynamic_label("award-winner"), "Award Winner")
        self.assertEqual(create_dynamic_label("linkedin"), "Linkedin")

    def test_infer_category(self):
        self.assertEqual(infer_category("github", "github.com/jane"), "social")
        self.assertEqual(infer_category("handle", "@jane"), "social")
        self.assertEqual(infer_category("fax", ""), "contact")
        self.assertEqual(infer_category("officeLine", "+33 1 23"), "contact")
        self.assertEqual(infer_category("awards", "Best Startup Award"), "professional")
        self.assertEqual(infer_category("hobbies", "chess"), "personal")
        self.assertEqual(infer_category("favoriteColor", "blue"), "other")

    def test_normalize_key(self):
        self.assertEqual(normalize_key("  Job Title "), "job title")
        self.assertEqual(normalize_key(None), "")


if __name__ == "__main__":
    unittest.main()
