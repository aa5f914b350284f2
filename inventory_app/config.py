"""
Configuration for the Inventory service and client.

All settings are read from environment variables with local-development
defaults.
"""
import os

# Fixed prefix shared by every HTTP route of the service
API_PREFIX = os.getenv("API_PREFIX", "/api")

# Key-value backend: "sql" (SQLAlchemy table) or "redis"
KV_BACKEND = os.getenv("KV_BACKEND", "sql")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./inventory.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Identity provider (Supabase-compatible auth API)
SUPABASE_URL = os.getenv("SUPABASE_URL", "http://localhost:54321")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
# When set, access tokens are verified locally instead of calling the provider
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"
IDENTITY_TIMEOUT = float(os.getenv("IDENTITY_TIMEOUT", "5.0"))  # seconds

# Client settings
INVENTORY_SERVICE_URL = os.getenv("INVENTORY_SERVICE_URL", "http://localhost:8000")
CLIENT_TIMEOUT = float(os.getenv("CLIENT_TIMEOUT", "5.0"))  # seconds
REPORT_DELAY_SECONDS = float(os.getenv("REPORT_DELAY_SECONDS", "1.5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
