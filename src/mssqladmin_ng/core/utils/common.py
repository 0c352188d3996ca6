# mssqladmin_ng/core/utils/common.py

# Built-in imports
from typing import Optional


def yes_no_prompt(question: str, default: Optional[bool] = True) -> bool:
    """
    Ask a yes/no question on the terminal.

    Args:
        question: Question to display
        default: Answer used on empty input (None forces an explicit answer)

    Returns:
        True for yes, False for no
    """
    if default is None:
        suffix = " [y/n] "
    elif default:
        suffix = " [Y/n] "
    else:
        suffix = " [y/N] "

    while True:
        try:
            answer = input(question + suffix).strip().lower()
        except EOFError:
            return bool(default)

        if not answer and default is not None:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False


def format_bytes(size: Optional[int]) -> str:
    """
    Renders a byte count with a binary unit.

    >>> format_bytes(1610612736)
    '1.50 GB'
    """
    if size is None:
        return ""

    value = float(size)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if abs(value) < 1024 or unit == "TB":
            if unit == "B":
                return f"{int(value)} B"
            return f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} PB"


def format_duration(seconds: Optional[int]) -> str:
    """
    Renders a number of seconds as HH:MM:SS.

    >>> format_duration(3725)
    '01:02:05'
    """
    if seconds is None:
        return ""
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
