"""Account management on top of the unit of work."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import select

from ..db.db_models import ApplicationUser, IdentityRole, UserLogin
from ..repositories.unit_of_work import SqlAlchemyUnitOfWork
from .errors import DuplicateUserError, IdentityError, InvalidTokenError
from .passwords import hash_password, verify_password
from .tokens import EMAIL_CONFIRMATION, PASSWORD_RESET, TokenService

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


def normalize(value: str) -> str:
    return value.strip().upper()


@dataclass(slots=True)
class UserManager:
    """Create accounts, check passwords, manage roles and account tokens."""

    uow: SqlAlchemyUnitOfWork
    tokens: TokenService

    @property
    def _session(self):
        return self.uow.session

    def find_by_email(self, email: str) -> ApplicationUser | None:
        return self.uow.application_user.get_first_or_default(
            ApplicationUser.normalized_email == normalize(email)
        )

    def find_by_id(self, user_id: str) -> ApplicationUser | None:
        return self.uow.application_user.get(user_id)

    def create(self, *, email: str, password: str | None = None, **profile: Any) -> ApplicationUser:
        """Persist a new account; ``password`` is optional for external logins."""
        if self.find_by_email(email) is not None:
            raise DuplicateUserError(f"Email '{email}' is already taken")
        if password is not None:
            _validate_password(password)
        user = ApplicationUser(
            user_name=email,
            email=email,
            normalized_email=normalize(email),
            password_hash=hash_password(password) if password is not None else None,
            email_confirmed=bool(profile.pop("email_confirmed", False)),
            **profile,
        )
        self.uow.application_user.add(user)
        self.uow.save()
        logger.info("identity.user.created", user_id=user.id)
        return user

    def check_password(self, user: ApplicationUser, password: str) -> bool:
        return verify_password(password, user.password_hash)

    def role_exists(self, role_name: str) -> bool:
        return self._find_role(role_name) is not None

    def create_role(self, role_name: str) -> IdentityRole:
        role = self._find_role(role_name)
        if role is not None:
            return role
        role = IdentityRole(name=role_name, normalized_name=normalize(role_name))
        self._session.add(role)
        self.uow.save()
        return role

    def add_to_role(self, user: ApplicationUser, role_name: str) -> None:
        role = self._find_role(role_name)
        if role is None:
            raise IdentityError(f"Role '{role_name}' does not exist")
        if role not in user.roles:
            user.roles.append(role)
            self.uow.save()

    def get_roles(self, user: ApplicationUser) -> list[str]:
        return sorted(role.name for role in user.roles)

    def is_in_role(self, user: ApplicationUser, role_name: str) -> bool:
        return normalize(role_name) in {role.normalized_name for role in user.roles}

    def generate_email_confirmation_token(self, user: ApplicationUser) -> str:
        return self.tokens.issue_purpose_token(
            EMAIL_CONFIRMATION, user_id=user.id, stamp=user.security_stamp
        )

    def confirm_email(self, user: ApplicationUser, token: str) -> None:
        self._check_purpose_token(user, token, EMAIL_CONFIRMATION)
        user.email_confirmed = True
        self.uow.save()

    def generate_password_reset_token(self, user: ApplicationUser) -> str:
        return self.tokens.issue_purpose_token(
            PASSWORD_RESET, user_id=user.id, stamp=user.security_stamp
        )

    def reset_password(self, user: ApplicationUser, token: str, new_password: str) -> None:
        self._check_purpose_token(user, token, PASSWORD_RESET)
        _validate_password(new_password)
        user.password_hash = hash_password(new_password)
        user.security_stamp = str(uuid.uuid4())
        self.uow.save()

    def find_by_login(self, provider: str, provider_key: str) -> ApplicationUser | None:
        login = self._session.scalars(
            select(UserLogin).where(
                UserLogin.login_provider == provider,
                UserLogin.provider_key == provider_key,
            )
        ).first()
        return login.user if login is not None else None

    def add_login(self, user: ApplicationUser, provider: str, provider_key: str, display_name: str | None = None) -> None:
        user.logins.append(
            UserLogin(
                login_provider=provider,
                provider_key=provider_key,
                provider_display_name=display_name or provider,
            )
        )
        self.uow.save()

    def _find_role(self, role_name: str) -> IdentityRole | None:
        return self._session.scalars(
            select(IdentityRole).where(IdentityRole.normalized_name == normalize(role_name))
        ).first()

    def _check_purpose_token(self, user: ApplicationUser, token: str, purpose: str) -> None:
        payload = self.tokens.read_purpose_token(token, purpose)
        if payload["sub"] != user.id or payload.get("stamp") != user.security_stamp:
            raise InvalidTokenError("Token does not belong to this account")


def _validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise IdentityError(f"Passwords must be at least {MIN_PASSWORD_LENGTH} characters")


__all__ = ["UserManager", "normalize"]
