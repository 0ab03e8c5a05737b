"""Company-registry lookup and transactional mail relay microservice.

This package provides the backend used by the client application to:

- Look up a company on the Societe.com registry by SIREN or SIRET and
  return one canonical record whatever shape the upstream answered with
- Compose multipart/mixed messages with a base64 attachment and relay them
  through an SMTP server over implicit TLS or STARTTLS
- Expose both operations as a small FastAPI application with CORS support

Example:
    Basic usage with the FastAPI application::

        from entreprise_proxy.config_loader import load_settings
        from entreprise_proxy.core import EntrepriseProxy
        from entreprise_proxy.api import create_app

        config = load_settings()
        app = create_app(EntrepriseProxy(config), config)
"""

__version__ = "1.0.0"
