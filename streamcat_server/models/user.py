# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""User account model."""

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from streamcat_server.models.base import Base
from streamcat_server.models.timestamp import TimestampMixin


class User(Base, TimestampMixin):
    """Registered account. Only the bcrypt hash of the password is stored."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("password_hash <> ''", name="users_password_hash_not_empty"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    nombre: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
