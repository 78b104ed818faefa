"""Configuration settings for the InvestIQ backend."""
import os
import secrets
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

# Values from a .env file in (or above) the working directory; real env vars win
load_dotenv(find_dotenv(usecwd=True))

# Paths
DATA_DIR = Path(os.environ.get("INVESTIQ_DATA_DIR", Path.home() / ".investiq"))
DB_PATH = Path(os.environ.get("INVESTIQ_DB_PATH", DATA_DIR / "investiq.db"))

# Auth
# Without INVESTIQ_SECRET_KEY every process signs with a fresh random key,
# so tokens do not survive a restart
SECRET_KEY = os.environ.get("INVESTIQ_SECRET_KEY") or secrets.token_hex(32)
TOKEN_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("INVESTIQ_TOKEN_EXPIRE_MINUTES", 60 * 24))
PASSWORD_HASH_ITERATIONS = 200_000

# HTTP
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("INVESTIQ_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
HOST = os.environ.get("INVESTIQ_HOST", "127.0.0.1")
PORT = int(os.environ.get("PORT", 5000))

# Reporting
UNCATEGORIZED = "Uncategorized"
DEFAULT_TREND_MONTHS = 6
MAX_TREND_MONTHS = 60
EMERGENCY_FUND_MONTHS = 3  # Recommended cushion, in months of expenses
SAVINGS_TARGET_RATE = 0.20  # 50/30/20 rule


def ensure_data_dir() -> Path:
    """Ensure the data directory exists."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return DATA_DIR
