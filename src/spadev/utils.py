import time

from rich.console import Console

# Configure console to handle encoding errors gracefully on Windows
# Use legacy_windows=False to enable modern Windows console APIs that support UTF-8
console = Console(legacy_windows=False)


def format_elapsed_ms(start_time_perf: float) -> str:
    """Format elapsed time since start_time_perf.

    If under 1 second, return milliseconds. Otherwise, return seconds and remaining milliseconds.
    """
    elapsed_seconds = time.perf_counter() - start_time_perf
    if elapsed_seconds < 1:
        return f"{int(elapsed_seconds * 1000)}ms"
    seconds = int(elapsed_seconds)
    remaining_ms = int((elapsed_seconds - seconds) * 1000)
    return f"{seconds}s {remaining_ms}ms"


def format_seconds(seconds: float) -> str:
    """Render a duration in seconds without trailing zeros (120.0 -> '120', 0.05 -> '0.05')."""
    return f"{seconds:g}"
