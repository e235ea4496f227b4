"""Authentication module for local accounts and password resets."""

from localauth.modules.auth.exceptions import (
    AlreadyExistsError,
    AuthError,
    InconsistentIDsError,
    IncorrectCredentialsError,
    InvalidAddressError,
    InvalidIDError,
    InvalidNameError,
    InvalidPasswordError,
    InvalidTokenError,
    NotFoundError,
    NotImplementedFeatureError,
)
from localauth.modules.auth.models import User
from localauth.modules.auth.notifications import (
    EmailTemplateConfig,
    EmailTemplates,
    NotificationDispatcher,
    NotificationError,
)
from localauth.modules.auth.password import hash_password, verify_password
from localauth.modules.auth.repository import UserRepository
from localauth.modules.auth.service import (
    PASSWORD_RESET_PURPOSE,
    PASSWORD_RESET_TTL,
    AuthService,
)

__all__ = [
    "PASSWORD_RESET_PURPOSE",
    "PASSWORD_RESET_TTL",
    "AlreadyExistsError",
    "AuthError",
    "AuthService",
    "EmailTemplateConfig",
    "EmailTemplates",
    "InconsistentIDsError",
    "IncorrectCredentialsError",
    "InvalidAddressError",
    "InvalidIDError",
    "InvalidNameError",
    "InvalidPasswordError",
    "InvalidTokenError",
    "NotFoundError",
    "NotImplementedFeatureError",
    "NotificationDispatcher",
    "NotificationError",
    "User",
    "UserRepository",
    "hash_password",
    "verify_password",
]
