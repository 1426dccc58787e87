# pollmaster/logging_config.py
"""
Logging configuration for the whole PollMaster project.
Bus traffic and readings get their own rotating files.
"""

import logging
import logging.handlers
import os
from pathlib import Path


def setup_logging(log_level: str = "INFO", log_to_file: bool = True, log_dir: Path = Path("logs")):
    """
    Configure logging for the whole project.

    Args:
        log_level: Root level (DEBUG, INFO, WARNING, ERROR)
        log_to_file: Write rotating log files or console only
        log_dir: Directory for the log files
    """

    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d [%(name)15s] %(levelname)8s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_formatter = logging.Formatter(
        fmt="%(asctime)s [%(name)15s] %(levelname)5s: %(message)s",
        datefmt="%H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "pollmaster.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5
        )
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

        # raw bus traffic only
        bus_handler = logging.handlers.RotatingFileHandler(
            log_dir / "bus_communication.log",
            maxBytes=5 * 1024 * 1024,   # 5 MB
            backupCount=10
        )
        bus_handler.setLevel(logging.DEBUG)
        bus_handler.setFormatter(detailed_formatter)
        bus_handler.addFilter(lambda record: record.name.startswith("rtu.driver"))
        root_logger.addHandler(bus_handler)

        # cycle results and calibration progress
        readings_handler = logging.handlers.RotatingFileHandler(
            log_dir / "readings.log",
            maxBytes=5 * 1024 * 1024,   # 5 MB
            backupCount=5
        )
        readings_handler.setLevel(logging.INFO)
        readings_handler.setFormatter(detailed_formatter)
        readings_handler.addFilter(lambda record: record.name == "PollMaster")
        root_logger.addHandler(readings_handler)

    logging.getLogger("rtu.driver").setLevel(logging.DEBUG)
    logging.getLogger("PollMaster").setLevel(logging.DEBUG)


def setup_logging_from_env():
    """Same as ``setup_logging`` but driven by POLLMASTER_LOG_* variables."""
    setup_logging(
        log_level=os.getenv("POLLMASTER_LOG_LEVEL", "INFO"),
        log_to_file=os.getenv("POLLMASTER_LOG_TO_FILE", "1") == "1",
        log_dir=Path(os.getenv("POLLMASTER_LOG_DIR", "logs")),
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_transaction_summary(logger: logging.Logger, direction: str, unit: int,
                            trans_type: str, details: str = ""):
    """One-line summary of a bus exchange; ``direction`` is "TX" or "RX"."""
    marker = ">>>" if direction == "TX" else "<<<"
    logger.debug("%s UNIT %3d: %s %s", marker, unit, trans_type, details)
