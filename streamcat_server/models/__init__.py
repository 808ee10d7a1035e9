# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Database models."""

from streamcat_server.models.base import Base
from streamcat_server.models.user import User
from streamcat_server.models.verification_code import VerificationCode

__all__ = [
    "Base",
    "User",
    "VerificationCode",
]
