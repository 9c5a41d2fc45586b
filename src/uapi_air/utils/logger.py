# uapi_air/utils/logger.py
"""
Logging configuration for the uapi_air package.

Configures the 'uapi_air' package logger from the 'logging' section of
config.yaml: a console handler on stdout and, when a file path is configured,
a second handler writing to that file at its own level. Module loggers
(uapi_air.air_service, uapi_air.faults, ...) only propagate to it.
"""

import logging
from sys import stdout

from .config_loader import LoggingSection

PACKAGE_LOGGER_NAME: str = 'uapi_air'

LOG_FORMAT: str = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'
DATE_FORMAT: str = '%Y-%m-%d %H:%M:%S'

# Names given to the handlers this module installs
CONSOLE_HANDLER_NAME: str = f'{PACKAGE_LOGGER_NAME}.console'
FILE_HANDLER_NAME: str = f'{PACKAGE_LOGGER_NAME}.file'


def _remove_own_handlers(package_logger: logging.Logger) -> None:
    for handler in list(package_logger.handlers):
        if handler.get_name() in (CONSOLE_HANDLER_NAME, FILE_HANDLER_NAME):
            package_logger.removeHandler(handler)
            handler.close()


def setup_logger(config: LoggingSection | None = None) -> logging.Logger:
    """
    Set up logging for the uapi_air package.

    Calling it again replaces the handlers installed by the previous call, so
    a reloaded configuration never duplicates log lines. Handlers added by the
    application itself are left alone.

    Args:
        config: The 'logging' section of the configuration. Defaults to
                console logging at INFO.

    Returns:
        The package logger.

    Example:
        >>> config = load_config()
        >>> setup_logger(config.logging)
    """
    section: LoggingSection = config if config is not None else LoggingSection()
    console_level: int = section.get_console_level_int()
    file_level: int | None = section.get_file_level_int()

    package_logger: logging.Logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    _remove_own_handlers(package_logger)

    # The logger passes everything either handler wants; handlers filter
    levels: list[int] = [console_level] if file_level is None else [console_level, file_level]
    package_logger.setLevel(min(levels))

    formatter: logging.Formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler: logging.Handler = logging.StreamHandler(stdout)
    console_handler.set_name(CONSOLE_HANDLER_NAME)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if section.file_path is not None and file_level is not None:
        section.file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler: logging.Handler = logging.FileHandler(
            filename=str(section.file_path),
            mode='a',
            encoding='utf-8',
        )
        file_handler.set_name(FILE_HANDLER_NAME)
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)
        package_logger.debug(f'Logging to file: {section.file_path}')

    return package_logger
