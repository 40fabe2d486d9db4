from enum import Enum
import logging

logger = logging.getLogger(__name__)


class LogColors(Enum):
    DEBUG = '\033[2m'
    WARNING = '\033[33m'
    ERROR = '\033[31m'
    RESET = '\033[0m'


class LogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord):
        message = record.getMessage()
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        match record.levelno:
            case logging.DEBUG:
                return f"{LogColors.DEBUG.value}{record.name}: {message}{LogColors.RESET.value}"
            case logging.WARNING:
                return f"{LogColors.WARNING.value}Warn: {message}{LogColors.RESET.value}"
            case level if level >= logging.ERROR:
                return f"{LogColors.ERROR.value}Error: {message}{LogColors.RESET.value}"

        return message


def configure_logging(verbose: bool):
    handler = logging.StreamHandler()
    handler.setFormatter(LogFormatter())

    logging.basicConfig(
        level=(logging.DEBUG if verbose else logging.INFO),
        handlers=[handler]
    )
    # aiohttp logs every request at INFO.
    logging.getLogger("aiohttp.access").setLevel(
        logging.DEBUG if verbose else logging.WARNING
    )
