import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
HANDLER_NAME = "classgrid-console"


def setup_logging(level: str = "INFO") -> None:
    """
    Console logging for the API process.
    Safe to call more than once; the handler is only attached the first time.
    """
    root = logging.getLogger()
    root.setLevel(level)

    # Prevent duplicate handlers (uvicorn reload, repeated app startup in tests)
    if any(handler.get_name() == HANDLER_NAME for handler in root.handlers):
        return

    console = logging.StreamHandler()
    console.set_name(HANDLER_NAME)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root.addHandler(console)
