import logging
import os
import subprocess
from pathlib import Path
from typing import cast

import requests
from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[2]
LOG_DIR = REPO_ROOT / "log"
API_PID_FILE = REPO_ROOT / "api_server.pid"
PUMP_PID_FILE = REPO_ROOT / "event_pump.pid"

API_HOST = "127.0.0.1"
API_PORT = 5577

HTTP_OK_MIN = 200
HTTP_OK_MAX = 400

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("graydetox.boot")


def http_ok(url: str, timeout: float = 2.5) -> bool:
    if not url.lower().startswith(("http://", "https://")):
        return False
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.RequestException:
        return False
    else:
        status = cast("int", getattr(resp, "status_code", 0))
        return HTTP_OK_MIN <= status < HTTP_OK_MAX


def run_command(command: list[str]) -> None:
    subprocess.run(command, check=False)  # noqa: S603


def load_local_env() -> None:
    """.env.local を読み込む（GRAYDETOX_* の設定用）."""
    load_dotenv(dotenv_path=REPO_ROOT / ".env.local", override=True)


def api_base_url() -> str:
    return os.getenv("GRAYDETOX_API_URL", f"http://{API_HOST}:{API_PORT}").rstrip("/")
