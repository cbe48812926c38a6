import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(app):
    """
    Routes app.logger and the package's module loggers through one handler
    at the configured LOG_LEVEL.
    """
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    package_logger = logging.getLogger("gathermemorials")
    package_logger.handlers = [handler]
    package_logger.setLevel(level)
    package_logger.propagate = False

    app.logger.setLevel(level)
