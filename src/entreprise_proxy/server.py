# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""ASGI application entry point for uvicorn.

This module builds the configured FastAPI application at import time from
the INI file and ``EPX_*`` environment variables.

Usage:
    uvicorn entreprise_proxy.server:app --host 0.0.0.0 --port 8091

Environment variables:
    EPX_CONFIG: Path to the INI configuration file (default: config.ini)
"""

from __future__ import annotations

from .api import create_app
from .config_loader import load_settings
from .core import EntrepriseProxy
from .logger import configure_logging

_config = load_settings()
configure_logging(_config.server.log_level)

app = create_app(EntrepriseProxy(_config), _config)
