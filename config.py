"""
Runtime configuration for the card scanning service.
Values come from the environment (or a local .env file).
"""
import os
import secrets
import logging
from types import MappingProxyType
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

APP_ENV = os.getenv("APP_ENV", "development")
IS_PRODUCTION = APP_ENV == "production"

APP_SECRET_KEY = os.getenv("APP_SECRET_KEY")
if not APP_SECRET_KEY:
    logger.warning("APP_SECRET_KEY not configured. Scan tokens will not survive a restart.")
    APP_SECRET_KEY = secrets.token_urlsafe(32)

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:3001,http://localhost:8000").split(",")
    if origin.strip()
]

PUBLIC_SITE_URL = os.getenv("PUBLIC_SITE_URL", "http://localhost:3000")

# Gemini
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
SCAN_MODEL_NAME = os.getenv("SCAN_MODEL_NAME", "gemini-1.5-flash")
GREETING_MODEL_NAME = os.getenv("GREETING_MODEL_NAME", "gemini-2.5-flash-lite")

# OCR
OCR_LANGUAGE_HINTS = [
    code.strip()
    for code in os.getenv("OCR_LANGUAGE_HINTS", "en,es,fr,it,vi,zh").split(",")
    if code.strip()
]
TESSERACT_CMD = os.getenv("TESSERACT_CMD")

# Tokens and rate limits
SCAN_TOKEN_TTL_SECONDS = int(os.getenv("SCAN_TOKEN_TTL_SECONDS", "600"))
PUBLIC_SCAN_RATE_LIMIT = int(os.getenv("PUBLIC_SCAN_RATE_LIMIT", "200"))
PUBLIC_SCAN_RATE_WINDOW_MINUTES = int(os.getenv("PUBLIC_SCAN_RATE_WINDOW_MINUTES", "60"))
TOKEN_RATE_LIMIT = int(os.getenv("TOKEN_RATE_LIMIT", "30"))
TOKEN_RATE_WINDOW_MINUTES = int(os.getenv("TOKEN_RATE_WINDOW_MINUTES", "60"))

# Image limits
MIN_IMAGE_BASE64_LENGTH = 100
MAX_IMAGE_BYTES = 15 * 1024 * 1024

# AI extraction
MIN_AI_TEXT_LENGTH = 10

# USD per million tokens: (input, output)
MODEL_PRICING = MappingProxyType({
    "gemini-1.5-flash": (0.075, 0.30),
    "gemini-2.0-flash": (0.10, 0.40),
    "gemini-2.5-flash": (0.30, 2.50),
    "gemini-2.5-flash-lite": (0.10, 0.40),
})

PRECHECK_COST_PER_SIDE = 0.003
FALLBACK_AI_COST = 0.001
AI_FAILURE_COST = 0.005
MIN_OPERATION_COST = 0.0001
