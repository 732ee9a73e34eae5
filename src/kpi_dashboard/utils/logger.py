import logging
import sys
import os
from kpi_dashboard.config import settings


def get_logger(name: str) -> logging.Logger:
    """
    Configures and returns a logger instance with the specified name.
    """
    logger = logging.getLogger(name)

    # Avoid adding multiple handlers if logger is already configured
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # --- Formatter ---
    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # --- File Handler ---
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    log_file = os.path.join(settings.LOG_DIR, "app.log")
    file_handler = logging.FileHandler(log_file, mode='a')  # Append mode
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger
