# onboarding/config.py
import logging
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Content lives next to the package, one level up, in data/
DEFAULT_CONTENT_PATH = os.path.join(BASE_DIR, "..", "data", "onboarding_content.json")

SERVICE_TITLE = os.getenv("SERVICE_TITLE", "Onboarding Progression Engine")
CONTENT_PATH = os.getenv("ONBOARDING_CONTENT_PATH", DEFAULT_CONTENT_PATH)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Used only when the content file does not carry its own quiz settings
QUIZ_PASS_THRESHOLD = int(os.getenv("QUIZ_PASS_THRESHOLD", "80"))
QUIZ_MAX_ATTEMPTS = int(os.getenv("QUIZ_MAX_ATTEMPTS", "3"))


def _split_csv(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


MANAGER_IDS = _split_csv(os.getenv("MANAGER_IDS", ""))
CORS_ORIGINS = _split_csv(os.getenv("CORS_ORIGINS", "*"))


def configure_logging(level: str = None) -> None:
    """Configure the root logger once for the service process."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
