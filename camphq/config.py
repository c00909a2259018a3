import calendar
import os
from datetime import date
from pathlib import Path
from dotenv import load_dotenv
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent  # <project>
INSTANCE_DIR = BASE_DIR / "instance"

def _default_sqlite_uri():
    INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{(INSTANCE_DIR / 'camphq.db').as_posix()}"

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or _default_sqlite_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # season window for the licensee incentive summary, MM-DD
    INCENTIVE_SEASON_START = os.getenv("INCENTIVE_SEASON_START", "04-01")
    INCENTIVE_SEASON_END = os.getenv("INCENTIVE_SEASON_END", "08-31")

def _month_day(value: str) -> tuple[int, int]:
    try:
        m, d = map(int, str(value).strip().split("-"))
        date(2000, m, d)  # leap year, so 02-29 passes
    except (TypeError, ValueError):
        raise ValueError(f"season boundary must be MM-DD, got {value!r}")
    return m, d

def _on(year: int, m: int, d: int) -> date:
    if (m, d) == (2, 29) and not calendar.isleap(year):
        d = 28
    return date(year, m, d)

def season_window(year: int, config) -> tuple[date, date]:
    """First and last day of the incentive season in `year` (inclusive)."""
    start = _on(year, *_month_day(config.get("INCENTIVE_SEASON_START", "04-01")))
    end = _on(year, *_month_day(config.get("INCENTIVE_SEASON_END", "08-31")))
    if end < start:
        raise ValueError("season end is before season start")
    return start, end

def ensure_instance(app):
    # Flask instance path
    os.makedirs(app.instance_path, exist_ok=True)
