"""
Short greeting sent to the person whose card was scanned, in their language.
Only the greeting line comes from the model; the call to action is fixed text.
"""
import re
import logging
from typing import Dict, Optional
from urllib.parse import urlsplit

from config import PUBLIC_SITE_URL

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "en": "English", "es": "Spanish", "fr": "French", "de": "German",
    "it": "Italian", "pt": "Portuguese", "zh": "Chinese", "ja": "Japanese",
    "ko": "Korean", "ar": "Arabic", "hi": "Hindi", "ru": "Russian",
    "nl": "Dutch", "sv": "Swedish", "no": "Norwegian", "da": "Danish",
    "fi": "Finnish", "pl": "Polish", "tr": "Turkish", "th": "Thai", "vi": "Vietnamese",
}

CTA_TEMPLATES = {
    "en": "Get your own at {site}.",
    "fr": "Créez la vôtre sur {site}.",
    "es": "Consigue la tuya en {site}.",
    "de": "Holen Sie sich Ihre eigene auf {site}.",
}

FALLBACK_GREETINGS = {
    "en": "Thanks for connecting, {name}!",
    "fr": "Merci pour cet échange, {name} !",
    "es": "¡Gracias por conectar, {name}!",
    "de": "Danke für den Austausch, {name}!",
}

SYSTEM_INSTRUCTION = """You are a savvy networking assistant for a digital business card company. Write a short, memorable greeting after a business card exchange.

TONE: Clever, friendly, professional.

RULES:
1. Response MUST be in {language}.
2. Short greeting, under 20 words.
3. Do NOT include any URL, website or call-to-action.
4. No quotation marks, explanations, or signature."""


def _language_code(language: Optional[str]) -> str:
    return (language or "en").strip().lower()


def _site_name(url: str) -> str:
    return urlsplit(url).netloc or url


def extract_client_name(fields) -> Optional[str]:
    """First non-empty field whose label mentions a name"""
    for field in fields:
        if "name" in field.label.lower() and field.value and field.value.strip():
            return field.value.strip()
    return None


def clean_greeting(text: str) -> str:
    return re.sub(r'^["\']|["\']$', '', (text or "").strip()).strip()


class PersonalizedMessageGenerator:
    def __init__(self, generator=None, site_url: str = PUBLIC_SITE_URL):
        self.generator = generator
        self.site_url = site_url

    def _compose(self, greeting: str, language: str, owner_name: str) -> Dict[str, str]:
        cta = CTA_TEMPLATES.get(language, CTA_TEMPLATES["en"])
        return {
            "greeting": greeting,
            "ctaText": cta.format(site=_site_name(self.site_url)),
            "url": self.site_url,
            "signature": f"- {owner_name}",
        }

    def fallback_message(self, client_name: str, owner_name: str, language: str = "en") -> Dict[str, str]:
        code = _language_code(language)
        template = FALLBACK_GREETINGS.get(code, FALLBACK_GREETINGS["en"])
        return self._compose(template.format(name=client_name), code, owner_name)

    async def generate(self, client_name: str, owner_name: str, language: str = "en") -> Dict[str, str]:
        code = _language_code(language)
        language_name = LANGUAGE_NAMES.get(code, "English")

        try:
            if self.generator is None or not self.generator.is_available():
                raise RuntimeError("greeting generator not configured")

            prompt = (
                f'Write a short, fun, professional greeting in {language_name} from "{owner_name}" '
                f'to welcome "{client_name}".\n\n'
                "Example ideas (for tone only):\n"
                f'- "Great connecting, {client_name}! I\'ve saved your details the modern way."\n'
                f'- "Pleasure to meet you, {client_name}! Your card has been digitized."\n\n'
                f"Generate a new, original greeting in {language_name}."
            )
            response = await self.generator.generate(
                prompt,
                system_instruction=SYSTEM_INSTRUCTION.format(language=language_name),
            )
            greeting = clean_greeting(response["text"])
            if not greeting:
                raise ValueError("empty greeting")

            logger.info(f"Generated greeting in {language_name} for {client_name}")
            return self._compose(greeting, code, owner_name)

        except Exception as e:
            logger.warning(f"Failed to generate personalized message, using fallback: {str(e)}")
            return self.fallback_message(client_name, owner_name, code)
