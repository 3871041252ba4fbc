import os
from dataclasses import dataclass, asdict
from pathlib import Path

from dotenv import load_dotenv

from .schema import DEFAULT_BATCH_SIZE, DEFAULT_UPDATE_KEY, validate_settings


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


@dataclass
class Settings:
    db_path: Path = Path("data/wiki.db")
    batch_size: int = DEFAULT_BATCH_SIZE
    update_key: str = DEFAULT_UPDATE_KEY
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    def errors(self):
        return validate_settings(asdict(self))


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise SystemExit(f"{name} must be an integer, got {raw!r}")


def load_settings() -> Settings:
    """Build Settings from PARENTFILL_* environment variables."""
    return Settings(
        db_path=Path(os.getenv("PARENTFILL_DB", "data/wiki.db")),
        batch_size=_int("PARENTFILL_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        update_key=os.getenv("PARENTFILL_UPDATE_KEY", DEFAULT_UPDATE_KEY),
        log_level=os.getenv("PARENTFILL_LOG_LEVEL", "INFO"),
        log_dir=Path(os.getenv("PARENTFILL_LOG_DIR", "logs")),
    )
