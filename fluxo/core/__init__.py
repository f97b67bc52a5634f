"""Core application utilities."""

from .config import Settings, get_settings
from .database import (
    async_session_factory,
    close_db,
    engine,
    get_session,
    init_db,
)
from .dependencies import (
    AuthenticatedUserDep,
    CurrentUser,
    CurrentUserDep,
    MailSenderDep,
    OptionalUserDep,
    SessionDep,
    get_authenticated_user,
    get_current_user,
    get_current_user_optional,
)
from .security import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "engine",
    "async_session_factory",
    "get_session",
    "init_db",
    "close_db",
    # Dependencies
    "CurrentUser",
    "get_authenticated_user",
    "get_current_user",
    "get_current_user_optional",
    "AuthenticatedUserDep",
    "CurrentUserDep",
    "OptionalUserDep",
    "SessionDep",
    "MailSenderDep",
    # Security
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_token",
]
