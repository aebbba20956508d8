"""Backend-specific configuration."""
import os
from dotenv import load_dotenv

load_dotenv()

CACHE_TTL_LEADERBOARD = int(os.getenv("CACHE_TTL_LEADERBOARD", "300"))  # 5 min
CACHE_TTL_TRADER = int(os.getenv("CACHE_TTL_TRADER", "600"))  # 10 min
CACHE_TTL_TIERS = int(os.getenv("CACHE_TTL_TIERS", "3600"))  # 1 hour
BACKEND_HOST = os.getenv("BACKEND_HOST", "0.0.0.0")
BACKEND_PORT = int(os.getenv("BACKEND_PORT", "8000"))
BACKEND_RELOAD = os.getenv("BACKEND_RELOAD", "false").lower() in ("1", "true", "yes")
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:5173")
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", FRONTEND_ORIGIN).split(",")
    if origin.strip()
]
