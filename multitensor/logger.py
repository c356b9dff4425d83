import logging
import os


def get_tensors_logger(name: str = "multitensor"):
    logger = logging.getLogger(name)
    root = logging.getLogger("multitensor")
    if not root.hasHandlers():
        handler = logging.StreamHandler()
        formatter = logging.Formatter('[%(asctime)s][%(levelname)s][%(name)s] %(message)s')
        handler.setFormatter(formatter)
        root.addHandler(handler)
    level_name = os.getenv("TENSORS_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    root.setLevel(level)
    return logger
