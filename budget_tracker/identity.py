# budget_tracker/identity.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from budget_tracker.errors import NotAuthenticated


class IdentityProvider(Protocol):
    def current_user_id(self) -> Optional[str]:
        """Return the signed-in user's id, or None."""


@dataclass
class StaticIdentity:
    """Identity fixed at construction time (CLI flag, config, tests)."""

    user_id: Optional[str] = None

    def current_user_id(self) -> Optional[str]:
        return self.user_id or None

    def sign_out(self) -> None:
        self.user_id = None


def require_user(identity: IdentityProvider) -> str:
    user_id = identity.current_user_id()
    if not user_id:
        raise NotAuthenticated("No user is signed in")
    return user_id
