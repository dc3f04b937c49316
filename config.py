# Environment configuration. Read once at import; nothing else touches os.environ.
from __future__ import annotations

import os
from typing import List, Optional


def _int_or_none(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Comma separated; the renderer dev server and production site by default
CORS_ORIGINS: List[str] = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
    ).split(",")
    if o.strip()
]

# Tutor collaborator: "static" (offline) or "openai"
TUTOR_PROVIDER = os.getenv("TUTOR_PROVIDER", "static").strip().lower()
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
TUTOR_MODEL = os.getenv("TUTOR_MODEL", "gpt-4o-mini")
TUTOR_MAX_TOKENS = int(os.getenv("TUTOR_MAX_TOKENS", "200"))
TUTOR_TEMPERATURE = float(os.getenv("TUTOR_TEMPERATURE", "0.7"))
# Upper bound on a single collaborator call; there is no retry
TUTOR_TIMEOUT_S = float(os.getenv("TUTOR_TIMEOUT_S", "8"))

# Optional seeds for reproducible demos
HINT_SEED = _int_or_none("HINT_SEED")
PROBLEM_SEED = _int_or_none("PROBLEM_SEED")

# Live sessions: idle ones are dropped after SESSION_IDLE_S (0 disables),
# and at most MAX_SESSIONS are kept, least recently used evicted first
SESSION_IDLE_S = float(os.getenv("SESSION_IDLE_S", "3600"))
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "1000"))
