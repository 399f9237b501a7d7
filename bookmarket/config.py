import os
from pathlib import Path
from dotenv import load_dotenv

# Force-load .env from the project root; real environment variables win
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

DATABASE_URL = os.getenv("DATABASE_URL")

CLIENT_DOMAIN = os.getenv("CLIENT_DOMAIN", "http://localhost:5173").rstrip("/")

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "usd")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
