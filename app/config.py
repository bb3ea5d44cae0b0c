import os
from pathlib import Path
from dotenv import load_dotenv

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

DATABASE_URL = os.getenv("DATABASE_URL")
PAYMENT_STORE = os.getenv("PAYMENT_STORE", "sql").lower()

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")

JWT_SECRET = os.getenv("JWT_SECRET")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_JSON = os.getenv("LOG_JSON", "true").lower() in ("1", "true", "yes")

PORT = int(os.getenv("PORT", "8080"))
