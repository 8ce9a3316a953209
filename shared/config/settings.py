import os
from dotenv import load_dotenv

load_dotenv()

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "storefront")

# DATABASE_URL wins when set (tests point it at a sqlite+aiosqlite file)
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
OTEL_TRACING_ENABLED = os.getenv("OTEL_TRACING_ENABLED", "true").lower() == "true"
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
ORDER_RATE_LIMIT = os.getenv("ORDER_RATE_LIMIT", "10/second")

# Seeded rows the POS and pickup paths depend on
PICKUP_LOCATION_ID = os.getenv("PICKUP_LOCATION_ID", "pickup-location-default")
WALK_IN_PHONE = os.getenv("WALK_IN_PHONE", "WALK_IN_CUSTOMER")
WALK_IN_NAME = os.getenv("WALK_IN_NAME", "Walk-in Customer")

# Admin / POS shared secret; see shared.security.api_key for the unset fallback
INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "")
