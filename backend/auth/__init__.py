"""Account registration, login and session lookup."""

from backend.auth.service import (
    AuthError,
    get_user_for_token,
    hash_password,
    login_user,
    logout,
    register_user,
    verify_password,
)

__all__ = [
    "AuthError",
    "hash_password",
    "verify_password",
    "register_user",
    "login_user",
    "get_user_for_token",
    "logout",
]
