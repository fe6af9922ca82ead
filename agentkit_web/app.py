import logging
import os
from collections import deque
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from .config import (
    HOST, PORT, LOG_LEVEL, LOG_FILE, STATUS_TOKEN, APP_TITLE, APP_DESCRIPTION,
    OPENAI_DOMAIN_PUBLIC_KEY, CHATKIT_SCRIPT_URL
)
from .credentials import API_KEY_ENV_PRIORITY, OpenAICredentials, resolve_openai_credentials

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

# Ensure log directory exists
log_dir = os.path.dirname(LOG_FILE)
if log_dir and not os.path.exists(log_dir):
    os.makedirs(log_dir)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(),
        # Max 5MB, keep 1 backup.
        RotatingFileHandler(LOG_FILE, maxBytes=5*1024*1024, backupCount=1)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info(f"Logging to file: {os.path.abspath(LOG_FILE)}")
    if not OPENAI_DOMAIN_PUBLIC_KEY:
        logger.warning("OPENAI_DOMAIN_PUBLIC_KEY is not set; ChatKit will reject this domain.")
    result = resolve_openai_credentials()
    if result.ok:
        logger.info(f"Using OpenAI API key from {result.value.source}")
    else:
        logger.warning(f"OpenAI credentials not usable yet ({result.error.reason}): {result.error.message}")
    yield


app = FastAPI(title=APP_TITLE, description=APP_DESCRIPTION, lifespan=lifespan)

templates = Jinja2Templates(directory=TEMPLATES_DIR)


async def verify_token(
    x_auth_token: str = Header(None, alias="X-Auth-Token"),
    query_token: str = Query(None, alias="token")
):
    # If STATUS_TOKEN is empty, the status endpoint is open
    if not STATUS_TOKEN:
        return

    token = x_auth_token or query_token
    if not token or token != STATUS_TOKEN:
        raise HTTPException(status_code=401, detail="Unauthorized")


def require_credentials() -> OpenAICredentials:
    """Resolve credentials from the process environment or fail the request."""
    result = resolve_openai_credentials()
    if not result.ok:
        error = result.error
        logger.error(f"Credential resolution failed ({error.reason}): {error.message}")
        raise HTTPException(
            status_code=error.status,
            detail={"reason": error.reason, "message": error.message},
        )

    creds = result.value
    for warning in creds.warnings:
        logger.warning(f"{warning.message} {warning.context or {}}")
    return creds


def _configured_secrets() -> List[str]:
    """Every configured API key value plus the status token, for log redaction."""
    secrets = []
    for name in API_KEY_ENV_PRIORITY:
        value = (os.environ.get(name) or "").strip()
        if value and value not in secrets:
            secrets.append(value)
    if STATUS_TOKEN and STATUS_TOKEN not in secrets:
        secrets.append(STATUS_TOKEN)
    # Longest first; one key may contain another.
    return sorted(secrets, key=len, reverse=True)


@app.get("/", response_class=HTMLResponse)
def index(request: Request):
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": APP_TITLE,
            "description": APP_DESCRIPTION,
            "domain_public_key": OPENAI_DOMAIN_PUBLIC_KEY,
            "chatkit_script_url": CHATKIT_SCRIPT_URL,
        },
    )


@app.get("/api/credentials")
def credentials(creds: OpenAICredentials = Depends(require_credentials)):
    return {
        "ok": True,
        "source": creds.source,
        "project_id": creds.project_id,
        "project_scoped": creds.project_scoped,
        "warnings": [
            {"message": w.message, "context": w.context} for w in creds.warnings
        ],
    }


@app.get("/status", dependencies=[Depends(verify_token)])
def status():
    result = resolve_openai_credentials()
    if result.ok:
        cred_status = {"ok": True, "source": result.value.source, "warnings": len(result.value.warnings)}
    else:
        cred_status = {"ok": False, "reason": result.error.reason}
    # Every configured key, resolved or not.
    secrets = _configured_secrets()

    # Get recent logs (last 50 lines)
    recent_logs = []
    if os.path.exists(LOG_FILE):
        try:
            with open(LOG_FILE, "r", encoding="utf-8", errors="replace") as f:
                recent_logs = [line.strip() for line in deque(f, maxlen=50)]
        except OSError as e:
            recent_logs = [f"Error reading logs: {e}"]
        for secret in secrets:
            recent_logs = [line.replace(secret, "[REDACTED]") for line in recent_logs]

    return {
        "ok": True,
        "credentials": cred_status,
        "logs": recent_logs
    }


def main():
    uvicorn.run(app, host=HOST, port=PORT, log_level="warning")


if __name__ == "__main__":
    main()
