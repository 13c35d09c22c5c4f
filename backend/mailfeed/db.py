"""
Storage client configuration.
Uses Supabase Storage for feed documents and item records.
"""

import os
from pathlib import Path
from typing import Optional

from supabase import create_client, Client
from dotenv import load_dotenv

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")

STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "feeds")

# Feed templates ship with the package; TEMPLATES_DIR points elsewhere for custom feeds
TEMPLATES_DIR = os.getenv("TEMPLATES_DIR") or str(Path(__file__).parent / "templates")

PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")

# Admin client for storage operations (None when credentials are not configured)
supabase_admin: Optional[Client] = (
    create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    if SUPABASE_URL and SUPABASE_SERVICE_KEY
    else None
)


def get_storage_backend() -> str:
    """
    Resolve which storage backend to use.

    Priority:
      1. STORAGE_BACKEND env var ("supabase" or "memory")
      2. "supabase" when Supabase credentials are configured
      3. "memory"
    """
    explicit = os.getenv("STORAGE_BACKEND", "").lower().strip()
    if explicit:
        return explicit
    return "supabase" if supabase_admin is not None else "memory"
