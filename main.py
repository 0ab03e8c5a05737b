import logging

import uvicorn

from entreprise_proxy.api import create_app
from entreprise_proxy.config_loader import load_settings
from entreprise_proxy.core import EntrepriseProxy
from entreprise_proxy.logger import configure_logging


if __name__ == "__main__":
    settings = load_settings()
    configure_logging(settings.server.log_level)
    logging.getLogger("EntrepriseProxy").info(
        "Starting entreprise proxy on %s:%s", settings.server.host, settings.server.port
    )

    app = create_app(EntrepriseProxy(settings), settings)

    uvicorn.run(app, host=settings.server.host, port=settings.server.port)
