import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class Config:
    """Application configuration"""

    # API Configuration
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # Rate Limiting Configuration
    GEMINI_REQUEST_DELAY = float(os.getenv("GEMINI_REQUEST_DELAY", "2.0"))  # seconds between requests
    MAX_RETRIES = int(os.getenv("MAX_RETRIES", "5"))
    RETRY_DELAY = int(os.getenv("RETRY_DELAY", "60"))  # initial retry delay in seconds
    EXPONENTIAL_BACKOFF = os.getenv("EXPONENTIAL_BACKOFF", "true").lower() == "true"

    # Clause Matching Policy
    # "is this the same provision at all"
    MATCH_THRESHOLD = float(os.getenv("MATCH_THRESHOLD", "0.7"))
    # "is this provision unchanged verbatim"
    IDENTICAL_THRESHOLD = float(os.getenv("IDENTICAL_THRESHOLD", "0.99"))
    # advantage difference at or below this reads as balanced
    VERDICT_BALANCE_MARGIN = int(os.getenv("VERDICT_BALANCE_MARGIN", "1"))
    DEFAULT_TAXONOMY = os.getenv("DEFAULT_TAXONOMY", "universal")
    MIN_CLAUSES_FOR_COMPARISON = int(os.getenv("MIN_CLAUSES_FOR_COMPARISON", "2"))

    # Server Configuration
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8000"))
    DEBUG = os.getenv("DEBUG", "true").lower() == "true"

    # File Upload Configuration
    MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", "52428800"))  # 50MB
    UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads"))
    ALLOWED_EXTENSIONS = {'.pdf', '.docx', '.txt'}

    # Logging Configuration
    LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_TO_FILE = os.getenv("LOG_TO_FILE", "false").lower() == "true"

    @classmethod
    def initialize(cls):
        """Create required directories"""
        cls.UPLOAD_DIR.mkdir(exist_ok=True)
        logger.info(f"✓ Upload directory: {cls.UPLOAD_DIR.absolute()}")
        if cls.LOG_TO_FILE:
            cls.LOG_DIR.mkdir(exist_ok=True)
            logger.info(f"✓ Log directory: {cls.LOG_DIR.absolute()}")

        if not cls.GEMINI_API_KEY:
            logger.warning("GEMINI_API_KEY not set - document upload comparison is disabled")
        else:
            logger.info(f"✓ Gemini API Key configured")
        logger.info(f"✓ Model: {cls.GEMINI_MODEL}")
        logger.info(f"✓ Match threshold: {cls.MATCH_THRESHOLD} (identical: {cls.IDENTICAL_THRESHOLD})")
        logger.info(f"✓ Default taxonomy: {cls.DEFAULT_TAXONOMY}")
