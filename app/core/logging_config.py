import logging
import sys

from app.core.config import settings


def setup_logging(level: str = None) -> None:
    """Configure le logger racine une seule fois, au démarrage de l'app."""
    root = logging.getLogger()
    root.setLevel(level or settings.LOG_LEVEL)

    # évite les doublons si uvicorn/pytest ont déjà posé un handler
    for handler in list(root.handlers):
        if getattr(handler, "_taskboard", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    handler._taskboard = True
    root.addHandler(handler)

    # requests/urllib3 sont bavards en DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
