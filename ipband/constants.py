"""
Configuration constants for the ipband daemon.

Values come from the environment (optionally via a .env file in the project
root). Command-line options override them at startup.
"""
import os

from dotenv import load_dotenv

# Load .env file from project root
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

# Store
DSN = os.getenv("IPBAND_DSN", "user=test host=localhost")
CHANNEL = "bans"  # LISTEN/NOTIFY channel written to by the ban authoring side
APP_NAME_TEMPLATE = "shm-ipband [{name}]"  # Session application_name

# ipset Configuration
SET_NAME = os.getenv("IPBAND_SET", "ipband")
SET_TYPE = "hash:ip"
MIN_HASHSIZE = 64  # ipset refuses anything smaller
MAXELEM = 65536  # ipset default; create lines never pass maxelem, so this is the ceiling

# iptables Configuration
IPTABLES_CHAIN = os.getenv("IPBAND_CHAIN", "INPUT")
PROTECTED_PORTS = (80, 443)

# Ban handling
RANGE_POLICY = os.getenv("IPBAND_RANGE_POLICY", "exclude")  # exclude | flatten

# Timing (seconds)
DEBOUNCE_SECONDS = os.getenv("IPBAND_DEBOUNCE", "0")  # 0 = every notification reconciles
LISTEN_POLL_INTERVAL = 5.0  # How often the listener wakes up to check for stop()
MAX_BACKOFF = os.getenv("IPBAND_MAX_BACKOFF", "60")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
