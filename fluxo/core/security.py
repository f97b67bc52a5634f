"""Security utilities: authentication, hashing, secret generation."""

from datetime import datetime, timedelta, timezone
from uuid import UUID
import logging
import secrets
import string

import jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from .config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Firebase Admin SDK (lazy initialization)
_firebase_app = None


def get_firebase_app():
    """Get or initialize Firebase Admin SDK."""
    global _firebase_app

    if not settings.firebase_enabled:
        return None

    if _firebase_app is None:
        import firebase_admin
        from firebase_admin import credentials, exceptions

        # The private key may arrive with escaped newlines
        private_key = settings.firebase_private_key.replace("\\n", "\n")

        try:
            cred = credentials.Certificate({
                "type": "service_account",
                "project_id": settings.firebase_project_id,
                "client_email": settings.firebase_client_email,
                "private_key": private_key,
                "token_uri": "https://oauth2.googleapis.com/token",
            })
            _firebase_app = firebase_admin.initialize_app(cred)
            logger.info(f"Firebase Admin SDK initialized for project: {settings.firebase_project_id}")
        except (ValueError, exceptions.FirebaseError) as e:
            logger.error(f"Failed to initialize Firebase Admin SDK: {e}")
            return None

    return _firebase_app


# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


# =============================================================================
# GENERATED SECRETS
# =============================================================================

_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"


def generate_password(length: int | None = None) -> str:
    """Generate an initial credential for a provisioned account."""
    length = length or settings.generated_password_length
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


def generate_invite_code() -> str:
    """Short, shareable workspace join code (upper-case hex)."""
    return secrets.token_hex(settings.invite_code_bytes).upper()


def generate_invite_token() -> str:
    """Opaque single-use invitation token (64 hex chars)."""
    return secrets.token_hex(32)


# =============================================================================
# JWT TOKENS
# =============================================================================


class TokenPayload(BaseModel):
    """JWT token payload."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    type: str = "access"


def create_access_token(
    user_id: UUID,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )

    payload = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "type": "access",
    }

    return jwt.encode(payload, settings.secret_key, algorithm="HS256")


def decode_token(token: str) -> TokenPayload | None:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"])
        return TokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


class FirebaseTokenPayload(BaseModel):
    """Firebase JWT token payload."""

    uid: str  # Firebase user ID
    email: str | None = None
    email_verified: bool = False
    name: str | None = None
    picture: str | None = None
    sign_in_provider: str | None = None


def decode_firebase_token(token: str) -> FirebaseTokenPayload | None:
    """Decode and validate a Firebase ID token."""
    app = get_firebase_app()

    if not app:
        return None

    from firebase_admin import auth, exceptions

    try:
        decoded_token = auth.verify_id_token(token, app=app)
    except (ValueError, exceptions.FirebaseError) as e:
        logger.warning(f"Firebase token verification failed: {e}")
        return None

    firebase_claims = decoded_token.get("firebase", {})
    return FirebaseTokenPayload(
        uid=decoded_token["uid"],
        email=decoded_token.get("email"),
        email_verified=decoded_token.get("email_verified", False),
        name=decoded_token.get("name"),
        picture=decoded_token.get("picture"),
        sign_in_provider=firebase_claims.get("sign_in_provider"),
    )
