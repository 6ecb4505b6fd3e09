"""CSRF token attachment."""

from __future__ import annotations

import logging

from .cookies import CookieStore
from .options import CsrfConfig
from .transport import Transport

logger = logging.getLogger(__name__)


class CsrfPolicy:
    """Copies the CSRF cookie into a request header for unsafe methods.

    Attributes:
        config: Cookie name, header name and the set of safe methods.
        cookies: Where the token cookie is looked up.
    """

    def __init__(self, config: CsrfConfig, cookies: CookieStore) -> None:
        self.config = config
        self.cookies = cookies
        self._safe_methods = frozenset(m.upper() for m in config.safe_methods)

    def is_csrf_method(self, method: str) -> bool:
        """Return True unless ``method`` is one of the safe methods (case-insensitive)."""
        return method.upper() not in self._safe_methods

    def apply(self, transport: Transport, method: str, with_csrf: bool) -> bool:
        """Attach the token header to ``transport`` when required.

        Returns:
            True if the header was set.
        """
        if not with_csrf or not self.is_csrf_method(method):
            return False

        token = self.cookies.get(self.config.cookie_name)
        if not token:
            logger.debug("No %r cookie, sending %s without CSRF token", self.config.cookie_name, method)
            return False

        transport.set_request_header(self.config.header_name, token)
        return True
