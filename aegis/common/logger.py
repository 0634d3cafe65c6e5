import json
import logging
import os
import sys
import time


def get_logger(name="aegis", level=logging.WARNING, to_file=None):
    """
    Structured logger for Aegis components.

    Console output goes to stderr at `level`. When `to_file` is given, an
    append-only file handler records ERROR and above (the failure log).
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        fmt=json.dumps({
            "ts": "%(asctime)s",
            "level": "%(levelname)s",
            "name": "%(name)s",
            "msg": "%(message)s"
        }),
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    formatter.converter = time.gmtime  # UTC timestamps

    if not any(getattr(h, "_aegis_console", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler._aegis_console = True
        logger.addHandler(handler)

    if to_file:
        target = os.path.abspath(to_file)
        already = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == target
            for h in logger.handlers
        )
        if not already:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            file_handler = logging.FileHandler(target, mode="a", encoding="utf-8")
            file_handler.setLevel(logging.ERROR)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
