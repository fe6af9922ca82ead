import os
import sys
from dotenv import load_dotenv

load_dotenv()


def _int_env(key: str, default: int) -> int:
    """Parse an integer environment variable, falling back to *default* if missing or invalid."""
    val = (os.getenv(key) or "").strip()
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        print(f"WARNING: {key}={val!r} is not a valid integer, using default {default}", file=sys.stderr)
        return default


HOST = os.getenv("HOST", "0.0.0.0").strip()

PORT = _int_env("PORT", 3000)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

LOG_FILE = os.getenv("LOG_FILE", "data/agentkit_web.log").strip()

STATUS_TOKEN = os.getenv("STATUS_TOKEN")

APP_TITLE = os.getenv("APP_TITLE", "agentkit Amazing")

APP_DESCRIPTION = os.getenv("APP_DESCRIPTION", "agentkit Amazing - Powered by ChatKit")

# Publishable key for the ChatKit domain allowlist. Safe to expose in the page.
OPENAI_DOMAIN_PUBLIC_KEY = (os.getenv("OPENAI_DOMAIN_PUBLIC_KEY") or "").strip()

CHATKIT_SCRIPT_URL = os.getenv(
    "CHATKIT_SCRIPT_URL", "https://cdn.platform.openai.com/deployments/chatkit/chatkit.js"
).strip()
