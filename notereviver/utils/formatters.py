"""Formatting utilities for notereviver."""


def format_size(bytes_: int) -> str:
    """Format bytes as human-readable size.

    Args:
        bytes_: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 GB", "42.3 MB")

    Examples:
        >>> format_size(0)
        '0 B'
        >>> format_size(1536)
        '1.5 KB'
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if bytes_ < 1024.0:
            if unit == "B":
                return f"{int(bytes_)} {unit}"
            return f"{bytes_:.1f} {unit}"
        bytes_ /= 1024.0
    return f"{bytes_:.1f} PB"


def format_time(seconds: float) -> str:
    """Format time duration in human-readable format.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., "2m 15s", "45s", "1h 23m")

    Examples:
        >>> format_time(45)
        '45s'
        >>> format_time(135)
        '2m 15s'
        >>> format_time(3723)
        '1h 2m'
    """
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    elif seconds < 3600:
        minutes = seconds // 60
        secs = seconds % 60
        if secs > 0:
            return f"{minutes}m {secs}s"
        return f"{minutes}m"
    else:
        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        if minutes > 0:
            return f"{hours}h {minutes}m"
        return f"{hours}h"


def format_count(count: int, noun: str) -> str:
    """Pluralize a count for summaries.

    Examples:
        >>> format_count(1, "file")
        '1 file'
        >>> format_count(3, "directory")
        '3 directories'
        >>> format_count(2, "alias")
        '2 aliases'
    """
    if count == 1:
        return f"{count} {noun}"
    if noun.endswith("s"):
        return f"{count} {noun}es"
    if noun.endswith("y"):
        return f"{count} {noun[:-1]}ies"
    return f"{count} {noun}s"
