from dotenv import load_dotenv
import os


load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./itemtrack.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

# Client-persisted active team preference
ACTIVE_TEAM_COOKIE = os.getenv("ACTIVE_TEAM_COOKIE", "active_team_id")
ACTIVE_TEAM_COOKIE_MAX_AGE = 60 * 60 * 24 * 30
COOKIE_SECURE = ENVIRONMENT == "production"

TEAM_NAME_MIN_LENGTH = 3

# Shared item categories created at startup
DEFAULT_CATEGORIES = [
    name.strip()
    for name in os.getenv("DEFAULT_CATEGORIES", "Food,Household,Medicine,Documents,Other").split(",")
    if name.strip()
]
