"""Serve the activity log API.

    python scripts/run_api.py --port 8000

Reload is on outside RUN_MODE=prod.
"""
import argparse
import sys
from pathlib import Path

import uvicorn

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from packages.config import API_HOST, API_PORT, RUN_MODE, SUPABASE_ANON_KEY, SUPABASE_URL


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Serve the activity log API with uvicorn.")
    parser.add_argument("--host", default=API_HOST)
    parser.add_argument("--port", type=int, default=API_PORT)
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload in dev.")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if not (SUPABASE_URL and SUPABASE_ANON_KEY):
        print("Warning: SUPABASE_URL / SUPABASE_ANON_KEY not set; data endpoints will return 503.")
    reload = RUN_MODE != "prod" and not args.no_reload
    print(f"API running at http://{args.host}:{args.port} (mode={RUN_MODE}, reload={reload})")
    uvicorn.run(
        "apps.api.main:app",
        host=args.host,
        port=args.port,
        reload=reload,
        reload_dirs=[str(ROOT / "apps"), str(ROOT / "packages")] if reload else None,
        app_dir=str(ROOT),
    )


if __name__ == "__main__":
    main()
