"""Identity-provider boundary.

Sign-in itself is delegated to an external provider; this module only mirrors
its auth state into a :class:`Store`, picks the view to show, and turns
provider failures into the single inline message the auth form displays.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    id: str
    email: str
    display_name: Optional[str] = None

    @property
    def username(self) -> str:
        return self.display_name or self.email.split("@")[0]


@dataclass(frozen=True)
class AuthState:
    user: Optional[User] = None
    is_loading: bool = True


class IdentityProvider(Protocol):
    async def sign_in(self, email: str, password: str) -> None: ...

    async def sign_up(self, email: str, password: str, *, username: str) -> None: ...

    async def login_with_provider(self, provider: str) -> None: ...

    async def logout(self) -> None: ...

    def on_auth_state_changed(self, callback: Callable[[AuthState], None]) -> Callable[[], None]: ...


def view_for(state: AuthState) -> str:
    if state.is_loading:
        return "loading"
    return "builder" if state.user is not None else "landing"


class AuthSession:
    """Keeps ``store`` in sync with the provider until :meth:`close`."""

    def __init__(self, provider: IdentityProvider, store: Optional[Store[AuthState]] = None):
        self.provider = provider
        self.store = store or Store(AuthState())
        self._unsubscribe = provider.on_auth_state_changed(self.store.set)

    @property
    def view(self) -> str:
        return view_for(self.store.state)

    async def logout(self) -> None:
        await self.provider.logout()
        self.store.set(AuthState(user=None, is_loading=False))

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


class AuthForm:
    def __init__(self, provider: IdentityProvider):
        self.provider = provider
        self.error = ""
        self.is_loading = False

    async def login(self, email: str, password: str) -> bool:
        return await self._run(self.provider.sign_in(email, password), "Invalid credentials")

    async def signup(self, email: str, username: str, password: str, confirm_password: str) -> bool:
        self.error = ""
        if password != confirm_password:
            self.error = "Passwords do not match"
            return False
        return await self._run(self.provider.sign_up(email, password, username=username), "Registration failed")

    async def login_with_google(self) -> bool:
        return await self._run(self.provider.login_with_provider("google"), "Google sign-in failed")

    async def _run(self, call, message: str) -> bool:
        self.is_loading = True
        self.error = ""
        try:
            await call
        except Exception as exc:
            logger.warning("%s: %s", message, exc)
            self.error = message
            return False
        finally:
            self.is_loading = False
        return True
