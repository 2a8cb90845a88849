import logging

from pythonjsonlogger import jsonlogger


def setup_logger(level: str = 'INFO') -> None:
    """Send JSON log lines to stderr, once per process."""
    logger = logging.getLogger()
    logger.setLevel(level)
    if any(getattr(h, '_ciconsole', False) for h in logger.handlers):
        return

    logHandler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s',
                                         rename_fields={'levelname': 'level', 'asctime': 'timestamp'})
    logHandler.setFormatter(formatter)
    logHandler._ciconsole = True
    logger.addHandler(logHandler)
