"""
Auth service - registration and login on top of the user store.

Unknown email and wrong password both raise ``InvalidCredentials`` so a
client cannot probe which addresses are registered; the log line records
which case it was.
"""
import logging

from app.exceptions import EmailAlreadyRegistered, InvalidCredentials
from app.models import User
from app.security import create_access_token, hash_password, verify_password
from app.stores import UserStore

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, users: UserStore) -> None:
        self._users = users

    async def register(self, email: str, password: str) -> User:
        if await self._users.find_by_email(email) is not None:
            raise EmailAlreadyRegistered(email)

        user = await self._users.create(email, hash_password(password))
        logger.info(
            "User registered",
            extra={"event": "user_registered", "user_id": user.id},
        )
        return user

    async def login(self, email: str, password: str) -> str:
        """Return a signed access token for valid credentials."""
        user = await self._users.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning(
                "Login failed",
                extra={"event": "login_failed", "user_exists": user is not None},
            )
            raise InvalidCredentials()

        logger.info("User login", extra={"event": "user_login", "user_id": user.id})
        return create_access_token(user.id)
