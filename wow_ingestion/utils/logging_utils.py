"""
UTC-timestamped log helpers for the fetch jobs.

Lines go to stdout, which the Lambda runtime forwards to CloudWatch Logs.
Never pass secret values or tokens to these helpers.
"""

from datetime import datetime, timezone
from typing import Optional


def _utc_timestamp() -> str:
    """
    Generate the current UTC timestamp string.

    Returns:
        str: Timestamp formatted as YYYY-MM-DD HH:MM:SS in UTC.
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _emit(line: str) -> None:
    print(f"[{_utc_timestamp()}] {line}", flush=True)


def log_section_start(section: str) -> None:
    """
    Log the start of a section.

    Args:
        section (str): Description of the section that is beginning.
    """
    _emit(f"Starting: {section}")


def log_section_complete(section: str, details: Optional[str] = None) -> None:
    """
    Log the completion of a section.

    Args:
        section (str): Description of the section that finished.
        details (Optional[str]): Optional extra context to append to the message.
    """
    suffix = f" - {details}" if details else ""
    _emit(f"Completed: {section}{suffix}")


def log_progress(section: str, message: str) -> None:
    """
    Log an in-progress update for a section.

    Args:
        section (str): Description of the section that is running.
        message (str): Progress message to display for the section.
    """
    _emit(f"{section}: {message}")


def log_error(section: str, error: Exception | str) -> None:
    """
    Log an error that occurred during a section.

    Args:
        section (str): Description of the section where the error occurred.
        error (Exception | str): Exception instance or error message to record.
    """
    _emit(f"Error in {section}: {error}")
