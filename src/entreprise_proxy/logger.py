"""Logging utilities for the entreprise proxy.

The actual logging setup (level, handlers, format) is configured via
``logging.basicConfig()`` in the entry point to avoid duplicate handlers.

Example:
    Typical usage in a module::

        from entreprise_proxy.logger import get_logger

        logger = get_logger("RegistryClient")
        logger.info("Lookup completed")
"""

import logging


def get_logger(name: str = "EntrepriseProxy") -> logging.Logger:
    """Retrieve a logger instance bound to ``name``.

    No handlers or formatters are attached here; that responsibility lies
    with the application entry point.
    """
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
