import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()


class CustomExtraLogAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        my_context = kwargs.pop("extra", self.extra["extra"])
        return "[%s] %s" % (my_context, msg), kwargs


def get_logger(name, level=None) -> logging.LoggerAdapter:

    FORMAT = "[%(levelname)s  %(name)s %(module)s:%(lineno)s - %(funcName)s() - %(asctime)s]\n\t %(message)s \n"
    TIME_FORMAT = "%d.%m.%Y %I:%M:%S %p"

    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()

    # log file is optional, stdout always gets the records
    filename = os.environ.get("LOG_FILE") or None

    logging.basicConfig(
        format=FORMAT, datefmt=TIME_FORMAT, level=level, filename=filename
    )

    logger_instance = logging.getLogger(name)

    if filename and not logger_instance.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(FORMAT, TIME_FORMAT))
        logger_instance.addHandler(handler)

    logger_instance = CustomExtraLogAdapter(logger_instance, {"extra": None})

    return logger_instance


logger = get_logger(__name__)
