import logging


def setup_logger(name: str = "eventflux_core",
                 log_file: str | None = None, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s')

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


def set_level(level: int) -> None:
    """ Adjust every eventflux logger that has already been created. """
    for name, existing in logging.Logger.manager.loggerDict.items():
        if name.startswith("eventflux_core") and isinstance(existing, logging.Logger):
            existing.setLevel(level)
            for handler in existing.handlers:
                handler.setLevel(level)


def attach_log_file(log_file: str) -> logging.FileHandler:
    """ Mirror every eventflux logger into log_file; returns the shared handler. """
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(message)s'))
    for name, existing in logging.Logger.manager.loggerDict.items():
        if name.startswith("eventflux_core") and isinstance(existing, logging.Logger):
            existing.addHandler(file_handler)
    return file_handler


def detach_log_file(file_handler: logging.FileHandler) -> None:
    for name, existing in logging.Logger.manager.loggerDict.items():
        if name.startswith("eventflux_core") and isinstance(existing, logging.Logger):
            existing.removeHandler(file_handler)
    file_handler.close()
