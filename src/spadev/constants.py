"""Global constants for spadev."""

# Host/address defaults
DEFAULT_HOST = "localhost"
LOOPBACK_ADDRESS = "127.0.0.1"

# Startup defaults
DEFAULT_STARTUP_TIMEOUT = 120.0
DEFAULT_SCRIPT_NAME = "serve"
DEFAULT_PACKAGE_MANAGER = ("npm", "run")

# Upper bound for a single regex attempt against one output line (seconds).
# Development-time only, so a generous value is fine.
REGEX_MATCH_TIMEOUT = 5.0

# Line the dev server prints on stdout once it accepts connections
READINESS_LINE_TEMPLATE = f"Local:   http://{DEFAULT_HOST}:{{port}}/"

# How long to wait for stderr to finish once stdout has closed (seconds)
STDERR_DRAIN_TIMEOUT = 2.0

# asyncio.StreamReader line limit for child output (bytes)
STREAM_LINE_LIMIT = 1024 * 1024

# Root logger name
LOGGER_NAME = "spadev"
