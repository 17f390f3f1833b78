#!/usr/bin/env python3
"""
Container startup script.

1. Runs migrations + seed (release.py)
2. Starts gunicorn (replaces this process via os.execvp)

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def resolve_port(raw: str | None) -> int:
    port = (raw or "").strip()
    if not port:
        print("WARNING: PORT not set, using default 8080", flush=True)
        return 8080
    try:
        value = int(port)
    except ValueError:
        raise SystemExit(f"ERROR: Invalid PORT value '{port}'. Must be integer 1-65535.")
    if value < 1 or value > 65535:
        raise SystemExit(f"ERROR: Invalid PORT value '{port}'. Must be integer 1-65535.")
    return value


def main() -> None:
    port = resolve_port(os.environ.get("PORT"))
    workers = (os.environ.get("WEB_CONCURRENCY") or "2").strip()

    print("=== Running release phase ===", flush=True)
    from scripts.release import run_release
    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    print(f"=== Starting gunicorn on 0.0.0.0:{port} ===", flush=True)
    # exec so gunicorn becomes PID 1 and receives signals directly
    os.execvp(
        "gunicorn",
        [
            "gunicorn",
            "app.wsgi:app",
            "--bind", f"0.0.0.0:{port}",
            "--workers", workers,
            "--timeout", "60",
            "--preload",
            "--access-logfile", "-",
            "--error-logfile", "-",
        ],
    )


if __name__ == "__main__":
    main()
