# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Domain exceptions raised by the stores and collaborators."""


class StreamCatError(Exception):
    """Base class for StreamCat errors."""


class DuplicateIdentity(StreamCatError):
    """Username or email already belongs to an account."""

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} already registered")
        self.field = field


class AccountNotFound(StreamCatError):
    """No account has the given email."""


class NotificationError(StreamCatError):
    """The notification sender could not deliver a message."""


class CatalogError(StreamCatError):
    """The metadata provider failed or is not configured."""
