#!/usr/bin/env python3
import contextlib
import os
from pathlib import Path

import psutil

from scripts.boot.utils import (
    API_PID_FILE,
    PUMP_PID_FILE,
    REPO_ROOT,
    logger,
)


def stop_by_pid_file(path: Path) -> bool:
    """PIDファイルのプロセスを終了する. 終了させた場合は True."""
    if not path.exists():
        return False
    stopped = False
    try:
        pid = int(path.read_text(encoding="ascii"))
        psutil.Process(pid).terminate()
        stopped = True
    except ValueError:
        logger.warning(f"PIDファイルが壊れています: {path}")
    except psutil.NoSuchProcess:
        logger.info("すでに停止済みです")
    with contextlib.suppress(OSError):
        path.unlink(missing_ok=True)
    return stopped


def main() -> int:
    os.chdir(REPO_ROOT)

    logger.info("============== GrayDetox 停止中 ================")

    # PUMPを先に止めてからAPIを停止
    stop_by_pid_file(PUMP_PID_FILE)
    stop_by_pid_file(API_PID_FILE)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
