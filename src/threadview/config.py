"""Central configuration for endpoints, polling and protocol constants."""

import os

# Agent server; override with THREADVIEW_API_URL / THREADVIEW_API_KEY env vars
API_URL = os.environ.get("THREADVIEW_API_URL", "http://localhost:2024").rstrip("/")
API_KEY = os.environ.get("THREADVIEW_API_KEY") or None

# History polling
POLL_INTERVAL = float(os.environ.get("THREADVIEW_POLL_INTERVAL", "2.0"))  # seconds
INITIAL_POLL_DELAY = float(os.environ.get("THREADVIEW_INITIAL_POLL_DELAY", "0.5"))
HISTORY_LIMIT = int(os.environ.get("THREADVIEW_HISTORY_LIMIT", "100"))
HTTP_TIMEOUT = float(os.environ.get("THREADVIEW_HTTP_TIMEOUT", "15.0"))

# Messages with this id prefix are control messages and never displayed
DO_NOT_RENDER_ID_PREFIX = "do-not-render-"

# Vetting Q&A protocol
KNOWN_COUNTERPARTIES = ("buyer", "seller")
DEFAULT_COUNTERPARTY = "buyer"
ADDENDUM_MARKER = "the counterparty has answered your question:"

# Transcript rendering
MAX_TRANSCRIPT_CHARS = 50_000
