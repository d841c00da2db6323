from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Mapping, Optional

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from ..db.session import get_session
from ..errors import AuthenticationError, ValidationError
from ..models.user import User
from ..utils.dto import to_user_dto
from ..utils.validators import REGISTRABLE_ROLES, ensure_choice, ensure_email, ensure_phone, ensure_text
from .logging import log_event


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, detached from any DB session."""

    id: int
    role: str
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            id=user.id,
            role=user.role,
            name=user.name,
            email=user.email,
            phone=user.phone,
            address=user.address,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class AuthService:
    """Registration, password login and HS256 bearer tokens."""

    ALGORITHM = "HS256"

    def __init__(self, secret_key: str, expire_days: int = 7, session_factory=get_session):
        self._secret_key = secret_key
        self._expire_days = expire_days
        self._session_factory = session_factory

    def issue_token(self, user_id: int, role: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "role": role,
            "iat": now,
            "exp": now + timedelta(days=self._expire_days),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.ALGORITHM)

    def decode_token(self, token: str) -> Dict:
        try:
            return jwt.decode(token, self._secret_key, algorithms=[self.ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expiré")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Token invalide")

    def authenticate(self, token: Optional[str]) -> Actor:
        if not token:
            raise AuthenticationError("Non autorisé, token manquant")
        claims = self.decode_token(token)
        try:
            user_id = int(claims.get("sub"))
        except (TypeError, ValueError):
            raise AuthenticationError("Token invalide")
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if user is None:
                raise AuthenticationError("Utilisateur introuvable")
            return Actor.from_user(user)

    def register(self, payload: Mapping) -> Dict:
        name = ensure_text(payload.get("name"), "name", min_len=2, max_len=100)
        email = ensure_email(payload.get("email"))
        password = ensure_text(payload.get("password"), "password", min_len=6, max_len=128)
        phone = ensure_phone(payload.get("phone"))
        address = ensure_text(payload.get("address"), "address", min_len=5)
        role = ensure_choice(payload.get("role") or "client", "role", REGISTRABLE_ROLES)

        with self._session_factory() as session:
            if session.query(User.id).filter(User.email == email).first():
                raise ValidationError("Un utilisateur avec cet email existe déjà")
            user = User(
                name=name,
                email=email,
                password=generate_password_hash(password),
                phone=phone,
                address=address,
                role=role,
            )
            session.add(user)
            session.flush()
            log_event("info", "user.registered", user_id=user.id, role=role)
            return {"user": to_user_dto(user), "token": self.issue_token(user.id, user.role)}

    def login(self, email: Optional[str], password: Optional[str]) -> Dict:
        if not email or not password:
            raise ValidationError("Email et mot de passe requis")
        with self._session_factory() as session:
            user = session.query(User).filter(User.email == email.strip().lower()).first()
            if user is None or not check_password_hash(user.password, password):
                raise AuthenticationError("Email ou mot de passe incorrect")
            return {"user": to_user_dto(user), "token": self.issue_token(user.id, user.role)}

    def update_profile(self, actor: Actor, payload: Mapping) -> Dict:
        with self._session_factory() as session:
            user = session.get(User, actor.id)
            if user is None:
                raise AuthenticationError("Utilisateur introuvable")
            if "name" in payload:
                user.name = ensure_text(payload.get("name"), "name", min_len=2, max_len=100)
            if "phone" in payload:
                user.phone = ensure_phone(payload.get("phone"))
            if "address" in payload:
                user.address = ensure_text(payload.get("address"), "address", min_len=5)
            if payload.get("password"):
                user.password = generate_password_hash(
                    ensure_text(payload.get("password"), "password", min_len=6, max_len=128)
                )
            session.flush()
            return to_user_dto(user)
