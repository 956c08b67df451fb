"""
MovieLab API launcher.

Usage:
  python webui/start.py             # serve on :8000
  python webui/start.py --dev       # auto-reload on code changes
  python webui/start.py --port 9000
"""
from __future__ import annotations

import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).parent.parent
BACKEND_PORT = 8000


def main() -> None:
    args = sys.argv[1:]
    dev = "--dev" in args
    port = BACKEND_PORT
    if "--port" in args:
        idx = args.index("--port")
        if idx + 1 >= len(args):
            print("Usage: --port <number> [--dev]")
            sys.exit(1)
        port = int(args[idx + 1])

    print("=" * 60)
    print("  MovieLab API")
    print("=" * 60)

    print(f"\n► Starting backend on http://localhost:{port} …")
    backend_cmd = [
        sys.executable, "-m", "uvicorn",
        "webui.backend.app:app",
        "--port", str(port),
        "--host", "0.0.0.0",
    ]
    if dev:
        backend_cmd.append("--reload")

    backend = subprocess.Popen(backend_cmd, cwd=str(REPO_ROOT))
    try:
        backend.wait()
    except KeyboardInterrupt:
        print("\n⛔ Shutting down…")
    finally:
        backend.terminate()


if __name__ == "__main__":
    main()
