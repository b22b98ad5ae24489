"""Boot the read API in a subprocess and check /api/health and /api/activities.

    python scripts/smoke_api.py --port 8001

The activities check accepts 503 so the smoke run also passes on a machine
without store credentials.
"""
import argparse
import json
import subprocess
import sys
import time
import urllib.error
import urllib.request
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def get_json(url: str) -> tuple[int, dict]:
    try:
        with urllib.request.urlopen(url, timeout=2) as resp:
            return resp.status, json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as exc:
        return exc.code, json.loads(exc.read().decode("utf-8") or "{}")


def wait_for_health(base: str, timeout_sec: float) -> dict:
    deadline = time.monotonic() + timeout_sec
    last_error: Exception | None = None
    while time.monotonic() < deadline:
        try:
            status, body = get_json(f"{base}/api/health")
        except (urllib.error.URLError, ConnectionError, json.JSONDecodeError) as exc:
            last_error = exc
            time.sleep(0.5)
            continue
        if status == 200:
            return body
        last_error = RuntimeError(f"health returned HTTP {status}")
    raise SystemExit(f"Smoke failed: {last_error}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Smoke-test the activity log API.")
    parser.add_argument("--port", type=int, default=8001)
    parser.add_argument("--timeout", type=float, default=15.0)
    args = parser.parse_args()

    server = subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "apps.api.main:app", "--port", str(args.port)],
        cwd=ROOT,
    )
    base = f"http://127.0.0.1:{args.port}"
    try:
        health = wait_for_health(base, args.timeout)
        status, body = get_json(f"{base}/api/activities?sortBy=date")
        if status not in (200, 503):
            raise SystemExit(f"Smoke failed: /api/activities returned HTTP {status}: {body}")
        listed = len(body.get("activities", [])) if status == 200 else "n/a"
        print(
            f"Smoke OK (store: {health.get('store')}, last import: {health.get('last_import')}, "
            f"activities check: HTTP {status}, rows: {listed})"
        )
    finally:
        server.terminate()
        try:
            server.wait(timeout=5)
        except subprocess.TimeoutExpired:
            server.kill()


if __name__ == "__main__":
    main()
