import os
from pathlib import Path
from dotenv import load_dotenv


# Load environment variables
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

OPENFDA_EVENT_URL = os.getenv("OPENFDA_EVENT_URL", "https://api.fda.gov/drug/event.json")

# Retry budget for one load; delays in seconds (0 means retry immediately)
FETCH_ATTEMPTS = int(os.getenv("FETCH_ATTEMPTS", "3"))
RETRY_BASE_DELAY = float(os.getenv("RETRY_BASE_DELAY", "0"))
RETRY_MAX_DELAY = float(os.getenv("RETRY_MAX_DELAY", "2"))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15"))

# Discover window: fixed page size, random offset in [0, DISCOVER_MAX_OFFSET)
DISCOVER_PAGE_SIZE = int(os.getenv("DISCOVER_PAGE_SIZE", "50"))
DISCOVER_MAX_OFFSET = int(os.getenv("DISCOVER_MAX_OFFSET", "1000"))

CREDENTIAL_STORE_PATH = Path(
    os.getenv("CREDENTIAL_STORE_PATH", str(PROJECT_ROOT / ".drugdir" / "user.json"))
)
