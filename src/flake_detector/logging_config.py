# flake_detector/logging_config.py
import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-26s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are noisy at DEBUG during a long probe run
NOISY_LOGGERS = ("aiohttp", "asyncio", "urllib3")


def setup_logging(level: str = "WARNING", log_file: str | None = None) -> logging.Logger:
    """
    Configure the root logger.

    Console logs go to stderr so the run summary on stdout stays readable.
    If log_file is given, it receives every record at DEBUG and above
    regardless of the console level, which keeps per-probe failure reasons.
    """
    logger = logging.getLogger()
    console_level = getattr(logging, level.upper(), logging.WARNING)
    logger.setLevel(logging.DEBUG if log_file else console_level)

    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.info(f"Logging to file: {log_file}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(console_level, logging.WARNING))

    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.error("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = handle_exception

    return logger
