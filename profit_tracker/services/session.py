"""
User Session Accessor

Sign-in and sign-up are handled by an external identity provider. The
application only needs to know who is signed in, to scope records and
goals to that account.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from profit_tracker.config import SessionSettings, get_settings


class UserSession(BaseModel):
    """The authenticated identity."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    user_id: str = Field(..., min_length=1)
    email: str = ""


class SessionProvider(ABC):
    """Access to the current authenticated user, if any."""

    @abstractmethod
    def current_user(self) -> Optional[UserSession]:
        pass

    @abstractmethod
    def sign_out(self) -> None:
        pass


class StaticSessionProvider(SessionProvider):
    """
    A session pinned by configuration.

    Used by single-user deployments and tests. Signing out clears the
    session for the rest of the process.
    """

    def __init__(self, session: Optional[UserSession] = None):
        self._session = session

    @classmethod
    def from_settings(cls, settings: Optional[SessionSettings] = None) -> "StaticSessionProvider":
        settings = settings or get_settings().session
        return cls(UserSession(user_id=settings.user_id, email=settings.email))

    def current_user(self) -> Optional[UserSession]:
        return self._session

    def sign_out(self) -> None:
        self._session = None
