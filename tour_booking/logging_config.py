import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(message)s'

#-- configure the package logger once; module loggers propagate to it
def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    formatter = logging.Formatter(LOG_FORMAT)

    logger = logging.getLogger("tour_booking")
    logger.setLevel(level.upper())

    if not logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
