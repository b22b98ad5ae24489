from dataclasses import dataclass, field
from pathlib import Path
import os

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]

load_dotenv(ROOT / ".env")
load_dotenv(ROOT / ".env.local")


def _first_env(*keys: str) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


GARMIN_EXPORT_DIR = Path(
    os.getenv("GARMIN_EXPORT_DIR", ROOT / "Garmin Export" / "DI_Connect" / "DI-Connect-Fitness")
)
GARMIN_SOURCE_FILES = [
    name.strip()
    for name in os.getenv(
        "GARMIN_SOURCE_FILES",
        "lorenz.heer_0_summarizedActivities.json,"
        "lorenz.heer_1001_summarizedActivities.json,"
        "lorenz.heer_2002_summarizedActivities.json",
    ).split(",")
    if name.strip()
]
CACHE_PATH = Path(os.getenv("ACTIVITYLOG_CACHE_PATH", ROOT / "data" / "activities.json"))
BATCH_SIZE = int(os.getenv("ACTIVITYLOG_BATCH_SIZE", "500"))

# Hosted store (Supabase). The service key bypasses row level security and is
# only needed for seeding; the API reads with the anon key.
SUPABASE_URL = _first_env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
SUPABASE_SERVICE_KEY = _first_env("SUPABASE_SERVICE_KEY", "SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_ANON_KEY = _first_env("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")
STORE_TIMEOUT_SEC = float(os.getenv("ACTIVITYLOG_STORE_TIMEOUT", "30"))

API_HOST = os.getenv("ACTIVITYLOG_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("ACTIVITYLOG_API_PORT", "8000"))
RUN_MODE = os.getenv("RUN_MODE", "dev").lower()
RELEASE = os.getenv("ACTIVITYLOG_RELEASE")
SENTRY_DSN = os.getenv("ACTIVITYLOG_SENTRY_DSN")
SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("ACTIVITYLOG_SENTRY_TRACES_SAMPLE_RATE", "0") or 0)
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ACTIVITYLOG_CORS_ORIGINS",
        "http://127.0.0.1:3000,http://localhost:3000",
    ).split(",")
    if origin.strip()
]


@dataclass
class ImportConfig:
    """Everything one import run needs; built once at the entry point."""

    source_files: list[Path] = field(default_factory=list)
    cache_path: Path = CACHE_PATH
    store_url: str | None = None
    store_key: str | None = None
    batch_size: int = 500

    @property
    def store_configured(self) -> bool:
        return bool(self.store_url) and bool(self.store_key)


def load_import_config() -> ImportConfig:
    return ImportConfig(
        source_files=[GARMIN_EXPORT_DIR / name for name in GARMIN_SOURCE_FILES],
        cache_path=CACHE_PATH,
        store_url=SUPABASE_URL,
        store_key=SUPABASE_SERVICE_KEY,
        batch_size=BATCH_SIZE,
    )
