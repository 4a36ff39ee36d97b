"""Registration, login and stateless bearer-token verification.

Passwords are hashed with bcrypt through passlib; session tokens are HS256
JWTs carrying ``sub`` (user id), ``email``, ``iat`` and ``exp``. Verifying a
token checks only its signature and expiry, never the user store.
"""

import logging
import unicodedata
import uuid
from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from clock import SystemClock
from config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, BCRYPT_ROUNDS
from errors import DuplicateEmail, InvalidCredentials, InvalidInput, Unauthenticated
from schemas import Identity, User
from storage import UserRepository

logger = logging.getLogger(__name__)


def make_password_context(rounds: int = BCRYPT_ROUNDS) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__default_rounds=rounds)


def normalize_email(email: str) -> str:
    # NFC matches what EmailStr hands us at registration
    return unicodedata.normalize("NFC", email.strip()).lower()


class Authenticator:
    def __init__(
        self,
        users: UserRepository,
        secret_key: str,
        algorithm: str = ALGORITHM,
        token_ttl: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        bcrypt_rounds: int = BCRYPT_ROUNDS,
        clock=None,
    ):
        self.users = users
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.token_ttl = token_ttl
        self.clock = clock or SystemClock()
        self.pwd_context = make_password_context(bcrypt_rounds)

    @classmethod
    def from_settings(cls, settings, users: UserRepository, clock=None) -> "Authenticator":
        return cls(
            users,
            secret_key=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            token_ttl=timedelta(minutes=settings.token_ttl_minutes),
            bcrypt_rounds=settings.bcrypt_rounds,
            clock=clock,
        )

    # Password hashing

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return self.pwd_context.verify(plain_password, hashed_password)

    # Operations

    def register(self, name: str, email: str, password: str) -> User:
        email = normalize_email(email)
        if not name or not name.strip() or not email or not password:
            raise InvalidInput("Name, email and password are required")

        if self.users.get_by_email(email):
            logger.info("Registration rejected, email already in use: %s", email)
            raise DuplicateEmail()

        user = User(
            id=uuid.uuid4().hex,
            name=name.strip(),
            email=email,
            password_hash=self.hash_password(password),
        )
        self.users.add(user)
        logger.info("Registered user %s (%s)", user.id, user.email)
        return user

    def login(self, email: str, password: str) -> str:
        """Return a signed token, or raise ``InvalidCredentials``.

        Unknown emails and wrong passwords fail identically; an unknown email
        still pays for one bcrypt verification.
        """
        user = self.users.get_by_email(normalize_email(email or ""))
        if user is None:
            self.pwd_context.dummy_verify()
            logger.info("Login failed for %s", email)
            raise InvalidCredentials()

        if not self.verify_password(password or "", user.password_hash):
            logger.info("Login failed for %s", email)
            raise InvalidCredentials()

        logger.info("User %s logged in", user.id)
        return self.create_access_token(user)

    def create_access_token(self, user: User) -> str:
        issued_at = self.clock.now()
        expire = issued_at + self.token_ttl
        to_encode = {
            "sub": user.id,
            "email": user.email,
            "iat": int(issued_at.timestamp()),
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> Identity:
        if not token:
            raise Unauthenticated("Missing bearer token")

        try:
            # Expiry is checked against the injected clock below.
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            raise Unauthenticated("Invalid token")

        user_id = payload.get("sub")
        email = payload.get("email")
        expires_at = payload.get("exp")
        if not user_id or not isinstance(expires_at, (int, float)):
            raise Unauthenticated("Invalid token")
        if self.clock.now().timestamp() >= expires_at:
            raise Unauthenticated("Token expired")

        return Identity(user_id=str(user_id), email=email or "")
