from __future__ import annotations

from .api import create_app
from .logging import setup_logging
from .settings import load_settings

settings = load_settings()
setup_logging(settings, server=True)
app = create_app(settings)
