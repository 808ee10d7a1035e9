# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Password recovery code model."""

from datetime import datetime
from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from streamcat_server.models.base import Base
from streamcat_server.models.timestamp import TimestampMixin


class VerificationCode(Base, TimestampMixin):
    """Single-use 6-digit code sent to an email address.

    Linked to an account by email only; the ledger re-resolves the account
    when the code is used.
    """

    __tablename__ = "verification_codes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # At most one row per address; the ledger replaces it on every issue
    email: Mapped[str] = mapped_column(String(150), nullable=False, unique=True, index=True)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    consumed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
