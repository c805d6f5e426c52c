import logging

import colorlog

from payment_relay.config import Settings

LOG_FORMAT = "%(log_color)s%(levelname)-8s%(reset)s %(asctime)s %(name)s: %(message)s"

# Client libraries that log every outbound request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "stripe", "hpack")


def setup_logger(settings: Settings) -> logging.Logger:
    """Send all relay and server logs to one coloured stderr handler."""
    handler = colorlog.StreamHandler()
    handler.setFormatter(colorlog.ColoredFormatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))

    return root
