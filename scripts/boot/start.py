#!/usr/bin/env python3
import os
import subprocess
from pathlib import Path

from scripts.boot.utils import (
    API_HOST,
    API_PID_FILE,
    API_PORT,
    LOG_DIR,
    PUMP_PID_FILE,
    REPO_ROOT,
    api_base_url,
    http_ok,
    load_local_env,
    logger,
    run_command,
)


def background_popen(
    cmd: list[str], stdout_path: Path, stderr_path: Path, env: dict[str, str]
) -> subprocess.Popen[bytes]:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    with (
        stdout_path.open("ab", buffering=0) as stdout_f,
        stderr_path.open("ab", buffering=0) as stderr_f,
    ):
        return subprocess.Popen(  # noqa: S603
            cmd,
            cwd=str(REPO_ROOT),
            stdout=stdout_f,
            stderr=stderr_f,
            env=env,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )


def start_api(env: dict[str, str]) -> None:
    proc = background_popen(
        [
            "uv",
            "run",
            "uvicorn",
            "graydetox.api.main:app",
            "--port",
            str(API_PORT),
            "--host",
            API_HOST,
        ],
        stdout_path=LOG_DIR / "api.log",
        stderr_path=LOG_DIR / "api.err.log",
        env=env,
    )
    API_PID_FILE.write_text(str(proc.pid), encoding="ascii")
    if http_ok(f"{api_base_url()}/status", 30):
        logger.info(f"API Server: {api_base_url()} が起動 (PID {proc.pid})")
    else:
        logger.warning("FastAPI が応答しません ./log/ 以下を見て")


def start_pump(env: dict[str, str]) -> None:
    proc = background_popen(
        ["uv", "run", "python", "-m", "graydetox.watchers.pump"],
        stdout_path=LOG_DIR / "pump.log",
        stderr_path=LOG_DIR / "pump.err.log",
        env=env,
    )
    PUMP_PID_FILE.write_text(str(proc.pid), encoding="ascii")
    logger.info(f"Event Pump: が起動 (PID {proc.pid})")


def main() -> int:
    os.chdir(REPO_ROOT)

    logger.info("================ GrayDetox Starting up... ===============")

    load_local_env()
    child_env = os.environ.copy()

    run_command(["uv", "sync", "--extra", "test"])

    start_api(child_env)
    start_pump(child_env)

    logger.info("\n============== GrayDetox is now running! =================\n")
    logger.info("\nLogs: ./log/api.log, ./log/pump.log, ./log/graydetox.log")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
