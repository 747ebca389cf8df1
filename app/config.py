"""Centralised runtime configuration with fail-fast validation.

Usage
-----
    from app import config

    # once, at startup:
    settings = config.load()   # prints diagnostics, sys.exit(1) on error

    # anywhere else in the app:
    settings = config.get()    # returns cached Settings; raises if not loaded
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

# honour a .env file in the project root (local-dev convenience)
from dotenv import load_dotenv

load_dotenv()  # no-op when .env doesn't exist

_DEFAULT_CORS_ORIGIN = "https://sportyne-fe.onrender.com"


# ── public data class ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Settings:
    """Immutable, app-wide settings."""

    drive_folder_id: str  # root of the mirrored Drive tree
    drive_key_path: Path  # service-account JSON key
    data_dir: Path  # writable dir for the foods database
    foods_db_path: Path | None = None  # defaults to data_dir / "foods.db"
    refresh_minutes: int = 15
    content_cache_mb: int = 10
    drive_timeout_seconds: float = 30.0
    foods_cache_ttl_seconds: int = 300
    cors_origins: tuple[str, ...] = field(default=(_DEFAULT_CORS_ORIGIN,))

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_minutes * 60

    @property
    def content_cache_bytes(self) -> int:
        return self.content_cache_mb * 1024 * 1024

    @property
    def foods_db(self) -> Path:
        return self.foods_db_path or self.data_dir / "foods.db"


# ── module-level singleton ───────────────────────────────────────────────────

_settings: Settings | None = None


def _positive_number(name: str, default: str, errors: list[str], cast=int):
    """Parse a positive numeric env var, recording an error on bad input."""
    raw = os.environ.get(name, "").strip() or default
    try:
        value = cast(raw)
    except ValueError:
        errors.append(f"{name}={raw} is not a valid number.")
        return cast(default)
    if value <= 0:
        errors.append(f"{name}={raw} must be greater than zero.")
        return cast(default)
    return value


def cors_origins() -> tuple[str, ...]:
    """Frontend origins allowed by CORS (needed before load() runs)."""
    raw = os.environ.get("CORS_ORIGINS", "").strip() or _DEFAULT_CORS_ORIGIN
    return tuple(o.strip() for o in raw.split(",") if o.strip())


def load() -> Settings:
    """Read env vars, validate, cache, and return Settings.

    * Creates DATA_DIR if it doesn't exist (but errors if it can't be created).
    * Prints a clear summary on success; prints errors and calls sys.exit(1) on
      failure — the app should never start with a bad config.
    * Idempotent: returns the cached singleton on subsequent calls.
    """
    global _settings
    if _settings is not None:
        return _settings

    errors: list[str] = []

    # ── GOOGLE_DRIVE_FOLDER_ID ───────────────────────────────────────────
    folder_id = os.environ.get("GOOGLE_DRIVE_FOLDER_ID", "").strip()
    if not folder_id:
        errors.append(
            "GOOGLE_DRIVE_FOLDER_ID is not set. "
            "Set it to the id of the Drive folder whose tree should be served."
        )

    # ── GOOGLE_DRIVE_KEY_PATH ────────────────────────────────────────────
    key_path: Path | None = None
    key_raw = os.environ.get("GOOGLE_DRIVE_KEY_PATH", "").strip()
    if not key_raw:
        errors.append(
            "GOOGLE_DRIVE_KEY_PATH is not set. "
            "Set it to the service-account JSON key granting Drive access."
        )
    else:
        key_path = Path(key_raw)
        if not key_path.is_file():
            errors.append(f"GOOGLE_DRIVE_KEY_PATH={key_raw} is not a readable file.")
            key_path = None

    # ── DATA_DIR ─────────────────────────────────────────────────────────
    data_path: Path | None = None
    data_raw = os.environ.get("DATA_DIR", "").strip()
    if not data_raw:
        errors.append(
            "DATA_DIR is not set. "
            "Set it to a writable path for app data "
            "(e.g. ./data locally or /data inside Docker)."
        )
    else:
        data_path = Path(data_raw)
        if not data_path.exists():
            try:
                data_path.mkdir(parents=True, exist_ok=True)
                print(f"  ℹ  Created DATA_DIR: {data_path}")
            except OSError as exc:
                errors.append(
                    f"DATA_DIR={data_raw} does not exist and could not be created: {exc}"
                )
                data_path = None  # mark as invalid
        if data_path is not None and not data_path.is_dir():
            errors.append(f"DATA_DIR={data_raw} exists but is not a directory.")
            data_path = None

    foods_raw = os.environ.get("FOODS_DB_PATH", "").strip()

    # ── tunables ─────────────────────────────────────────────────────────
    refresh_minutes = _positive_number("DRIVE_REFRESH_MINUTES", "15", errors)
    cache_mb = _positive_number("DRIVE_CONTENT_CACHE_MB", "10", errors)
    timeout = _positive_number("DRIVE_TIMEOUT_SECONDS", "30", errors, cast=float)
    foods_ttl = _positive_number("FOODS_CACHE_TTL_SECONDS", "300", errors)

    origins = cors_origins()

    # ── Abort on any error ───────────────────────────────────────────────
    if errors:
        print("\n❌  Drive mirror — configuration error\n", file=sys.stderr)
        for e in errors:
            print(f"     • {e}", file=sys.stderr)
        print("", file=sys.stderr)
        sys.exit(1)

    assert key_path is not None and data_path is not None

    _settings = Settings(
        drive_folder_id=folder_id,
        drive_key_path=key_path.resolve(),
        data_dir=data_path.resolve(),
        foods_db_path=Path(foods_raw).resolve() if foods_raw else None,
        refresh_minutes=refresh_minutes,
        content_cache_mb=cache_mb,
        drive_timeout_seconds=timeout,
        foods_cache_ttl_seconds=foods_ttl,
        cors_origins=origins,
    )

    print("✅  Drive mirror — config loaded")
    print(f"     GOOGLE_DRIVE_FOLDER_ID = {_settings.drive_folder_id}")
    print(f"     DATA_DIR               = {_settings.data_dir}")
    print(f"     FOODS_DB               = {_settings.foods_db}")
    print(f"     refresh every {_settings.refresh_minutes} min, "
          f"content cache {_settings.content_cache_mb} MB")
    return _settings


def get() -> Settings:
    """Return the already-loaded Settings.  Raises if load() hasn't run."""
    if _settings is None:
        raise RuntimeError("Config not initialised — call config.load() at startup.")
    return _settings
