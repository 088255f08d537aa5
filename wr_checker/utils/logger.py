import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Union

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ('discord', 'aiohttp.access', 'sqlalchemy.engine')


def setup_logger(name: str, log_dir: Union[str, Path] = "logs", debug: bool = False) -> logging.Logger:
    """
    Attach console and daily file handlers to ``name``.

    Module loggers under the same package propagate here, so calling this
    once for the package root is enough.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(
        directory / f'{name}_{datetime.now().strftime("%Y%m%d")}.log',
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if not debug:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
