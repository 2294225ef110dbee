"""
Thin async wrapper around Google Gemini text generation.
"""
import logging
from typing import Any, Dict, Optional

import google.generativeai as genai

from config import GEMINI_API_KEY, SCAN_MODEL_NAME

logger = logging.getLogger(__name__)


class GeminiUnavailable(Exception):
    """No API key is configured for Gemini"""


class GeminiTextGenerator:
    """Generate text with a Gemini model and report token usage"""

    def __init__(self, api_key: Optional[str] = None, model_name: str = SCAN_MODEL_NAME):
        self.api_key = api_key or GEMINI_API_KEY
        self.model_name = model_name
        self._is_configured = False

        if self.api_key:
            genai.configure(api_key=self.api_key)
            self._is_configured = True
        else:
            logger.warning("GEMINI_API_KEY not configured. AI extraction will fall back to regex.")

    def is_available(self) -> bool:
        return self._is_configured

    async def generate(self, prompt: str, system_instruction: Optional[str] = None) -> Dict[str, Any]:
        """
        Returns {"text", "input_tokens", "output_tokens", "model"}.
        Token counts are None when the response carries no usage metadata.
        """
        if not self.is_available():
            raise GeminiUnavailable("Gemini API key not configured")

        model = genai.GenerativeModel(self.model_name, system_instruction=system_instruction)
        response = await model.generate_content_async(prompt)

        usage = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage, "prompt_token_count", None) if usage else None
        output_tokens = getattr(usage, "candidates_token_count", None) if usage else None

        return {
            "text": response.text,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "model": self.model_name,
        }
