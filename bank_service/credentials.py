import logging
from typing import List

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .errors import Conflict, NotFound, Unauthorized
from .models import Role, User

logger = logging.getLogger(__name__)


class CredentialStore:
    """Users table plus bcrypt password hashing."""

    def __init__(self, rounds: int = 8):
        self.pwd = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def register(self, session: Session, username: str, password: str, role: Role) -> None:
        user = User(username=username, password_hash=self.pwd.hash(password), role=role)
        session.add(user)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.info("signup rejected, username taken: %s", username, extra={"action": "signup"})
            raise Conflict("Username already exists")
        logger.info("registered %s as %s", username, role.value, extra={"action": "signup", "user_id": user.id})

    def verify(self, session: Session, username: str, password: str) -> User:
        user = session.exec(select(User).where(User.username == username)).first()
        if not user:
            raise NotFound("User not found")
        if not self.pwd.verify(password, user.password_hash):
            logger.info("bad password for %s", username, extra={"action": "login", "user_id": user.id})
            raise Unauthorized("Invalid credentials")
        return user

    def list_customers(self, session: Session) -> List[User]:
        return list(session.exec(select(User).where(User.role == Role.customer).order_by(User.id)))
