# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Accounts: credential store and the register/login/recovery flows."""

import enum
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from streamcat_server.auth import burn_password_check, hash_password, verify_password
from streamcat_server.errors import DuplicateIdentity, AccountNotFound
from streamcat_server.models import User
from streamcat_server.services.codes import DEFAULT_TTL_SECONDS, CodeLedger
from streamcat_server.services.email import NotificationSender

logger = logging.getLogger(__name__)


class CredentialStore:
    """Persistence and lookup of accounts. Passwords only ever touch this class as plaintext."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_account(self, nombre: str, username: str, secret: str, email: str) -> User:
        if not secret:
            raise ValueError("secret must not be empty")
        result = await self.db.execute(select(User.id).where(User.username == username))
        if result.scalar_one_or_none() is not None:
            raise DuplicateIdentity("username")
        result = await self.db.execute(select(User.id).where(User.email == email))
        if result.scalar_one_or_none() is not None:
            raise DuplicateIdentity("email")
        user = User(
            nombre=nombre,
            username=username,
            email=email,
            password_hash=hash_password(secret),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same identity.
            await self.db.rollback()
            raise DuplicateIdentity("username or email") from e
        await self.db.refresh(user)
        logger.info("Created account %s (id=%s)", username, user.id)
        return user

    async def find_by_credentials(self, username: str, secret: str) -> User | None:
        """Return the account when username and password match, else None."""
        result = await self.db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None:
            burn_password_check(secret)
            return None
        if not verify_password(secret, user.password_hash):
            return None
        return user

    async def find_by_contact(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def update_secret(self, email: str, new_secret: str) -> User:
        if not new_secret:
            raise ValueError("secret must not be empty")
        user = await self.find_by_contact(email)
        if user is None:
            raise AccountNotFound(email)
        user.password_hash = hash_password(new_secret)
        await self.db.commit()
        return user


class Outcome(str, enum.Enum):
    OK = "ok"
    CODE_SENT = "code_sent"
    DUPLICATE_IDENTITY = "duplicate_identity"
    INVALID_CREDENTIALS = "invalid_credentials"
    UNKNOWN_ACCOUNT = "unknown_account"
    INVALID_OR_EXPIRED_CODE = "invalid_or_expired_code"


MESSAGES = {
    Outcome.OK: "Operación exitosa",
    Outcome.CODE_SENT: "Si el correo está registrado, recibirás un código de verificación",
    Outcome.DUPLICATE_IDENTITY: "El usuario o correo ya existe",
    Outcome.INVALID_CREDENTIALS: "Usuario o contraseña incorrectos",
    Outcome.UNKNOWN_ACCOUNT: "Correo no encontrado",
    Outcome.INVALID_OR_EXPIRED_CODE: "Código inválido o expirado",
}


@dataclass
class ServiceResult:
    """Result of a user-facing flow. Business failures are results, not exceptions."""

    outcome: Outcome
    account: User | None = None
    message: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = MESSAGES[self.outcome]

    @property
    def success(self) -> bool:
        return self.outcome in (Outcome.OK, Outcome.CODE_SENT)


class AccountService:
    """Registration, login and two-step password recovery."""

    def __init__(
        self,
        store: CredentialStore,
        ledger: CodeLedger,
        sender: NotificationSender,
        code_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        reveal_unknown_email: bool = False,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.sender = sender
        self.code_ttl_seconds = code_ttl_seconds
        self.reveal_unknown_email = reveal_unknown_email

    async def register(self, nombre: str, username: str, secret: str, email: str) -> ServiceResult:
        try:
            user = await self.store.create_account(nombre, username, secret, email)
        except DuplicateIdentity as e:
            logger.info("Registration rejected for %s: %s", username, e)
            return ServiceResult(Outcome.DUPLICATE_IDENTITY)
        return ServiceResult(Outcome.OK, account=user, message="Usuario registrado")

    async def login(self, username: str, secret: str) -> ServiceResult:
        user = await self.store.find_by_credentials(username, secret)
        if user is None:
            return ServiceResult(Outcome.INVALID_CREDENTIALS)
        return ServiceResult(Outcome.OK, account=user, message="Login exitoso")

    async def request_password_reset(self, email: str) -> ServiceResult:
        """Issue and send a code when the account exists.

        Raises NotificationError if delivery fails; the issued code is left to
        expire or be replaced by the next request.
        """
        user = await self.store.find_by_contact(email)
        if user is None:
            logger.info("Password reset requested for unknown email %s", email)
            if self.reveal_unknown_email:
                return ServiceResult(Outcome.UNKNOWN_ACCOUNT)
            return ServiceResult(Outcome.CODE_SENT)
        vc = await self.ledger.issue(email, ttl_seconds=self.code_ttl_seconds)
        await self.sender.send(email, vc.code)
        logger.info("Password reset code issued for account id=%s", user.id)
        if self.reveal_unknown_email:
            return ServiceResult(Outcome.CODE_SENT, message="Código enviado al correo")
        return ServiceResult(Outcome.CODE_SENT)

    async def verify_reset_code(self, email: str, code: str) -> bool:
        return await self.ledger.validate(email, code) is not None

    async def complete_password_reset(self, email: str, code: str, new_secret: str) -> ServiceResult:
        """Spend the code, then set the new password.

        The code is committed as consumed before the password update runs; if
        the update fails the code stays spent and a new one must be requested.
        """
        if await self.ledger.consume(email, code) is None:
            return ServiceResult(Outcome.INVALID_OR_EXPIRED_CODE)
        try:
            user = await self.store.update_secret(email, new_secret)
        except AccountNotFound:
            logger.warning("Valid code consumed for %s but no account has that email", email)
            return ServiceResult(Outcome.INVALID_OR_EXPIRED_CODE)
        logger.info("Password reset completed for account id=%s", user.id)
        return ServiceResult(Outcome.OK, account=user, message="Contraseña actualizada correctamente")
