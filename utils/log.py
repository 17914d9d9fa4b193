import logging, os
from logging.handlers import RotatingFileHandler

NAMESPACE = "startpage"
FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(log_dir: str, level="INFO") -> logging.Logger:
    """Send the app's records to ``<log_dir>/startpage.log`` (rotated) and stderr."""
    os.makedirs(log_dir, exist_ok=True)
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    log = logging.getLogger(NAMESPACE)
    log.setLevel(level)
    for old in list(log.handlers):
        old.close()
        log.removeHandler(old)
    fmt = logging.Formatter(FORMAT)
    for h in (RotatingFileHandler(os.path.join(log_dir, "startpage.log"), maxBytes=5 * 1024 * 1024,
                                  backupCount=3, encoding="utf-8"),
              logging.StreamHandler()):
        h.setFormatter(fmt)
        log.addHandler(h)
    return log


def get_logger(name: str = None) -> logging.Logger:
    base = logging.getLogger(NAMESPACE)
    return base.getChild(name) if name else base
