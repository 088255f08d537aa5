"""
Time formatting utilities for score display.
"""


def format_score_time(seconds: float) -> str:
    """
    Format a score time for display.
    
    Times under a minute are shown as plain seconds (e.g. ``31.9``), longer
    times as ``MM:SS.ffffff`` with six fractional digits.
    
    Args:
        seconds: Score time in seconds
        
    Returns:
        Formatted time string
    """
    if seconds < 0:
        raise ValueError("Negative seconds not allowed")
    
    if seconds < 60:
        return repr(float(seconds))
    
    total_micros = round(seconds * 1_000_000)
    whole, micros = divmod(total_micros, 1_000_000)
    minutes = (whole // 60) % 60
    secs = whole % 60
    
    return f"{minutes:02d}:{secs:02d}.{micros:06d}"


def format_improvement(improvement: float) -> str:
    """Format a time improvement as a negative delta with six decimals."""
    return f"-{improvement:.6f}"
