"""
Logging — console + log file under LOG_DIR, one logger tree for the vault.
"""
import logging
import os
import sys

from vault.config import get_settings

_ROOT = "vault"
_configured = False


def _configure() -> None:
    global _configured
    if _configured:
        return
    settings = get_settings()
    root = logging.getLogger(_ROOT)
    root.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    formatter = logging.Formatter("%(asctime)s - %(name)s: %(message)s")

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    try:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(settings.LOG_DIR, "vault.log"))
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    except OSError as e:
        root.warning(f"File logging disabled: {e}")

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger under the vault tree, e.g. get_logger("ocr") -> "vault.ocr"."""
    _configure()
    return logging.getLogger(f"{_ROOT}.{name}")
