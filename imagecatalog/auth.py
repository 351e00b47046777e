"""Authentication and authorization providers."""
import logging
from abc import ABC, abstractmethod

from imagecatalog.errors import CatalogError, Unauthenticated, Unauthorized

logger = logging.getLogger(__name__)


class AuthProvider(ABC):
    """Capability set consulted before privileged operations."""

    @abstractmethod
    def authenticate(self, authorization):
        """
        Check an Authorization header value.

        Returns:
            tuple: (authenticated, token)
        """

    @abstractmethod
    def authorize(self, token, role):
        """True if the token may act in the given role."""

    def require(self, authorization, role):
        """
        Authenticate and authorize in one step.

        Raises:
            Unauthenticated: If the credentials are missing or rejected
            Unauthorized: If the token lacks the role
        """
        if not authorization:
            raise Unauthenticated("This request requires an Authorization header.")
        authenticated, token = self.authenticate(authorization)
        if not authenticated:
            raise Unauthenticated("Authentication failed.")
        if not self.authorize(token, role):
            raise Unauthorized(f"Not authorized to {role}.")
        return token


class DenyAllProvider(AuthProvider):
    """Default provider; rejects every request."""

    def authenticate(self, authorization):
        return False, ""

    def authorize(self, token, role):
        return False


class PermissiveProvider(AuthProvider):
    """
    Accepts anything except the literal "never".

    For development and tests only.
    """

    def authenticate(self, authorization):
        if authorization == "never":
            return False, ""
        return True, "foo"

    def authorize(self, token, role):
        return role != "never"


class EventBusProvider(AuthProvider):
    """Authenticates by presenting the credentials to the event bus gateway."""

    def __init__(self, client_factory):
        """
        Args:
            client_factory: Callable taking an Authorization value and
                returning an EventClient
        """
        self.client_factory = client_factory

    def authenticate(self, authorization):
        try:
            self.client_factory(authorization).check_auth()
        except Unauthenticated:
            return False, ""
        except CatalogError as e:
            logger.warning("Could not reach the event bus to authenticate: %s", e)
            return False, ""
        return True, authorization

    def authorize(self, token, role):
        return bool(token)
