# config.py
import os

from dotenv import load_dotenv

# ------------------ ENV & CONFIG ------------------
load_dotenv()

API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")

# Models (override via env if your account uses different names)
# text planning, structured suggestions and page analysis
TEXT_MODEL = os.getenv("TEXT_MODEL", "gemini-2.5-flash")
# every image-producing call
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "gemini-2.5-flash-image-preview")

PRINT_PROMPTS = os.getenv("PRINT_PROMPTS", "1") == "1"
PROMPT_LOG_FILE = os.getenv("PROMPT_LOG_FILE", "")

SERVER_HOST = os.getenv("SERVER_HOST", "127.0.0.1")
SERVER_PORT = int(os.getenv("SERVER_PORT", "5001"))


def require_api_key() -> str:
    if not API_KEY:
        raise RuntimeError("Missing GEMINI_API_KEY in .env")
    return API_KEY
