"""Root pytest configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables before tests run
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)

# Tests never start the real scheduler
os.environ.setdefault("DISABLE_SCHEDULER", "true")
