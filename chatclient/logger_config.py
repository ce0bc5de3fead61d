import logging
import sys


def setup_logger(name: str = "chatclient", level: int = logging.WARNING) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        # stdout belongs to the chat transcript
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)

        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s')
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)
    else:
        for handler in logger.handlers:
            handler.setLevel(level)

    return logger
