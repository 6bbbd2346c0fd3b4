"""
Logging utilities for the interview scoring engine.
"""
import os
import logging

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s - %(message)s'


def setup_logging(log_file_path: str, level: str = "INFO") -> str:
    """
    Send session logs to a file and keep the terminal quiet.

    Only CRITICAL records reach the console; everything at `level` and
    above goes to the file, which is truncated on every call.

    Args:
        log_file_path: Path of the log file; missing directories are created
        level: Level name for the file handler (DEBUG, INFO, ...)

    Returns:
        Path to the log file

    Raises:
        ValueError: If the level name is unknown
    """
    file_level = logging.getLevelName(level.upper())
    if not isinstance(file_level, int):
        raise ValueError(f"Unknown log level: {level}")

    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    to_file = logging.FileHandler(log_file_path, mode='w')
    to_file.setLevel(file_level)
    to_file.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(to_file)

    # Terminal output belongs to the CLI's own prints
    to_console = logging.StreamHandler()
    to_console.setLevel(logging.CRITICAL)
    to_console.setFormatter(logging.Formatter('%(message)s'))
    root.addHandler(to_console)

    return log_file_path
