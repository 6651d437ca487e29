"""
Logging configuration.
"""
import logging
import sys


def setup_logging(level: int = logging.INFO):
    """
    Setup application logging.
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    # Provider SDKs log every HTTP request at INFO
    for noisy in ('httpx', 'openai', 'anthropic', 'stripe'):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.
    """
    return logging.getLogger(name)
