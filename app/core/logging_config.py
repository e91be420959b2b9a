import os
import sys

from loguru import logger

from app.core.config import settings

LOG_DIR = settings.LOG_DIR
FILE_FORMAT = "{time} | {level} | {extra[log_type]} | {message}"

# file name -> log_type routed into it
CATEGORY_SINKS = {
    "bookings.log": "booking",
    "payments.log": "payment",     # orders, verify, webhooks, reconciliation
    "admin.log": "admin",
    "notifications.log": "notification",
}

os.makedirs(LOG_DIR, exist_ok=True)

logger.remove()
logger.configure(extra={"log_type": "app"})

logger.add(
    sys.stderr,
    level="INFO",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {extra[log_type]} | {message}",
)

# Everything, whatever its category
logger.add(
    os.path.join(LOG_DIR, "app.log"),
    rotation="1 week",
    retention="4 weeks",
    level="INFO",
    enqueue=True,
    format=FILE_FORMAT,
)


def _only(log_type: str):
    return lambda record: record["extra"].get("log_type") == log_type


for filename, log_type in CATEGORY_SINKS.items():
    logger.add(
        os.path.join(LOG_DIR, filename),
        rotation="1 week",
        retention="4 weeks",
        level="INFO",
        enqueue=True,
        filter=_only(log_type),
        format=FILE_FORMAT,
    )

logger.add(
    os.path.join(LOG_DIR, "errors.log"),
    rotation="1 week",
    retention="8 weeks",
    level="ERROR",
    enqueue=True,
    backtrace=True,
)


def get_logger():
    return logger
