"""
hostupdater - Lock-safe APT/Flatpak maintenance runs for a single host
"""

__version__ = "0.3.0"

from .core import HostUpdater
from .errors import UpdaterError
from .models import RunConfig

__all__ = ["HostUpdater", "RunConfig", "UpdaterError"]
