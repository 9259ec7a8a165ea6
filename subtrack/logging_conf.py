import logging, sys
from subtrack.config import settings

def configure_logging():
    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL.upper())
    if any(getattr(h, "_subtrack", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s - %(message)s"
    )
    handler.setFormatter(formatter)
    handler._subtrack = True
    root.addHandler(handler)
