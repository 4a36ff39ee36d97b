import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once, early in startup."""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)

    # passlib logs a harmless traceback when probing newer bcrypt builds
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.captureWarnings(True)
