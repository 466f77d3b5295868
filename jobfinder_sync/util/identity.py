"""Acting-identity providers used to stamp and authorize owned records."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from firebase_admin import auth
from firebase_admin.exceptions import FirebaseError

from jobfinder_sync.exceptions import AuthenticationError
from jobfinder_sync.util.logger import get_logger

logger = get_logger(__name__)


class IdentityProvider(ABC):
    """Supplies the id (and optional email) of the user acting on the store."""

    @abstractmethod
    def current_user_id(self) -> Optional[str]:
        ...

    def current_user_email(self) -> Optional[str]:
        return None

    def require_user_id(self) -> str:
        """Current user id, or AuthenticationError when nobody is signed in."""
        uid = self.current_user_id()
        if not uid:
            raise AuthenticationError()
        return uid

    def audit_name(self) -> str:
        """Value written to createdBy/updatedBy: email when known, else the uid."""
        return self.current_user_email() or self.require_user_id()


class StaticIdentity(IdentityProvider):
    """Fixed identity, for scripts and tests."""

    def __init__(self, uid: Optional[str], email: Optional[str] = None):
        self.uid = uid
        self.email = email

    def current_user_id(self) -> Optional[str]:
        return self.uid

    def current_user_email(self) -> Optional[str]:
        return self.email


class FirebaseTokenIdentity(IdentityProvider):
    """Identity taken from a verified Firebase ID token.

    The token is verified lazily on first use with the default
    firebase_admin app (or ``app`` when given). A token that fails
    verification leaves the provider unauthenticated.
    """

    def __init__(self, id_token: Optional[str], app=None, check_revoked: bool = False):
        self._id_token = id_token
        self._app = app
        self._check_revoked = check_revoked
        self._claims: Optional[Dict[str, Any]] = None
        self._verified = False

    @property
    def claims(self) -> Dict[str, Any]:
        if not self._verified:
            self._verified = True
            self._claims = self._verify()
        return self._claims or {}

    def _verify(self) -> Optional[Dict[str, Any]]:
        if not self._id_token:
            return None
        try:
            return auth.verify_id_token(
                self._id_token, app=self._app, check_revoked=self._check_revoked
            )
        except (ValueError, FirebaseError) as e:
            logger.warning(f"Rejected Firebase ID token: {e}")
            return None

    def current_user_id(self) -> Optional[str]:
        return self.claims.get("uid") or self.claims.get("sub")

    def current_user_email(self) -> Optional[str]:
        return self.claims.get("email")
