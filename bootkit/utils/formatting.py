"""
Helper functions for formatting sizes and durations for the console.
"""

SIZE_UNITS = ("KB", "MB", "GB", "TB")


def format_size(bytes_size: int) -> str:
    """'512 B' below a kilobyte, otherwise one decimal in binary units ('1.5 MB')."""
    if bytes_size < 1024:
        return f"{max(bytes_size, 0)} B"
    size = float(bytes_size)
    for unit in SIZE_UNITS:
        size /= 1024
        if size < 1024 or unit == SIZE_UNITS[-1]:
            return f"{size:.1f} {unit}"


def format_duration(seconds: float) -> str:
    """'0.4s' for quick operations, '3m 05s' or '1h 02m 05s' for longer ones."""
    if seconds < 10:
        return f"{max(seconds, 0.0):.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"
