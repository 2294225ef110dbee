import os
import sys
import unittest

# Add current directory to path so we can import modules
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from field_extractor import (
    AIFieldExtractor,
    build_prompt,
    convert_qr_data_to_fields,
    extract_fields_basic,
    extract_json_object,
    parse_ai_json,
)
from scan_errors import AIResponseNotJSON

CARD_TEXT = "Jane Doe\nChief Technology Officer\nAcme Corp\njane@acme.com\n555-123-4567"


class FakeGenerator:
    def __init__(self, text="", input_tokens=100, output_tokens=50, model="gemini-1.5-flash", error=None):
        self.text = text
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.model = model
        self.error = error
        self.prompts = []

    def is_available(self):
        return True

    async def generate(self, prompt, system_instruction=None):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return {
            "text": self.text,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "model": self.model,
        }


class TestPromptAndParsing(unittest.TestCase):
    def test_prompt_is_side_aware(self):
        front = build_prompt(CARD_TEXT, "front")
        back = build_prompt("linkedin.com/in/jane", "back")

        self.assertIn("FRONT side", front)
        self.assertIn("Front sides typically contain", front)
        self.assertIn(CARD_TEXT, front)
        self.assertIn("BACK side", back)
        self.assertIn("Back sides often contain", back)
        self.assertIn("companyTagline", front)

    def test_parse_ai_json(self):
        parsed = parse_ai_json('Here you go:\n```json\n{"name": "Jane Doe", "email": "jane@acme.com"}\n```')
        self.assertTrue(parsed.ok)
        self.assertEqual(parsed.data["name"], "Jane Doe")

        self.assertFalse(parse_ai_json("I could not read this card.").ok)
        self.assertFalse(parse_ai_json("{name: Jane}").ok)
        self.assertFalse(parse_ai_json(None).ok)

    def test_extract_json_object_raises(self):
        with self.assertRaises(AIResponseNotJSON):
            extract_json_object("no json here")


class TestBasicExtraction(unittest.TestCase):
    def test_email_and_phone(self):
        fields = extract_fields_basic("Call 555-123-4567 or mail JANE@Acme.com, or jane2@acme.com", "back")
        self.assertEqual([f.label for f in fields], ["Email", "Phone"])

        email, phone = fields
        self.assertEqual(email.value, "jane@acme.com")
        self.assertEqual(email.confidence, 0.8)
        self.assertEqual(email.source, "basic_regex_back")
        self.assertEqual(phone.value, "(555) 123-4567")
        self.assertEqual(phone.confidence, 0.7)
        self.assertEqual(phone.side, "back")

    def test_nothing_found(self):
        self.assertEqual(extract_fields_basic("", "front"), [])
        self.assertEqual(extract_fields_basic("Innovating Your Future", "front"), [])

    def test_qr_fields(self):
        fields = convert_qr_data_to_fields({"name": "Jane Doe", "jobTitle": "CTO", "email": " "}, "back")
        self.assertEqual([f.label for f in fields], ["Name", "Job Title"])
        self.assertTrue(all(f.source == "qr_code_back" and f.confidence == 0.95 for f in fields))


class TestAIFieldExtractor(unittest.IsolatedAsyncioTestCase):
    async def test_ai_fields_with_qr(self):
        generator = FakeGenerator(
            '{"name": "jane doe", "email": "Jane@Acme.com", "companyTagline": "Innovating Your Future", '
            '"fax": "  ", "awards": ["Best Startup", "Top 10"]}'
        )
        extraction = await AIFieldExtractor(generator).extract(CARD_TEXT, "front", {"website": "acme.com"})

        self.assertTrue(extraction.ai_processed)
        self.assertIsNone(extraction.ai_error)
        labels = {f.label: f for f in extraction.fields}
        self.assertEqual(set(labels), {"Name", "Email", "Company Tagline", "Awards", "Website"})
        self.assertEqual(labels["Name"].value, "Jane Doe")
        self.assertEqual(labels["Name"].source, "enhanced-gemini-ai-front")
        self.assertTrue(labels["Company Tagline"].is_dynamic)
        self.assertEqual(labels["Awards"].value, "Best Startup, Top 10")
        self.assertEqual(labels["Website"].source, "qr_code_front")
        self.assertEqual(labels["Website"].value, "https://acme.com")
        # 100 input and 50 output tokens at 0.075 / 0.30 per million
        self.assertAlmostEqual(extraction.cost, 0.0000225)
        self.assertEqual(len(generator.prompts), 1)

    async def test_short_text_skips_ai(self):
        generator = FakeGenerator('{"name": "x"}')
        extraction = await AIFieldExtractor(generator).extract(
            "Hello", "back", {"name": "Jane Doe", "email": "jane@acme.com"}
        )

        self.assertFalse(extraction.ai_processed)
        self.assertEqual(extraction.cost, 0.0)
        self.assertEqual(generator.prompts, [])
        self.assertEqual({f.source for f in extraction.fields}, {"qr_code_back"})
        self.assertEqual(len(extraction.fields), 2)

    async def test_non_json_answer_falls_back_to_regex(self):
        generator = FakeGenerator("Sorry, I cannot help with that.")
        extraction = await AIFieldExtractor(generator).extract(CARD_TEXT, "front")

        self.assertFalse(extraction.ai_processed)
        self.assertEqual(extraction.cost, 0.005)
        self.assertEqual(extraction.method, "basic_regex")
        self.assertIn("JSON", extraction.ai_error)
        self.assertEqual({f.source for f in extraction.fields}, {"basic_regex_front"})

    async def test_fallback_with_nothing_to_find(self):
        generator = FakeGenerator("no json")
        extraction = await AIFieldExtractor(generator).extract("just a slogan, nothing else", "front")
        self.assertEqual(extraction.fields, [])
        self.assertFalse(extraction.ai_processed)

    async def test_provider_error_falls_back(self):
        generator = FakeGenerator(error=RuntimeError("quota exceeded"))
        extraction = await AIFieldExtractor(generator).extract(CARD_TEXT, "front")
        self.assertEqual(extraction.ai_error, "quota exceeded")
        self.assertEqual([f.label for f in extraction.fields], ["Email", "Phone"])

    async def test_missing_usage_uses_fallback_cost(self):
        generator = FakeGenerator('{"name": "Jane Doe"}', input_tokens=None, output_tokens=None)
        extraction = await AIFieldExtractor(generator).extract(CARD_TEXT, "front")
        self.assertTrue(extraction.ai_processed)
        self.assertEqual(extraction.cost, 0.001)


if __name__ == "__main__":
    unittest.main()
