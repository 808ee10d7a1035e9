#!/usr/bin/env python3
# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Create an account from the terminal. Run: python -m streamcat_server.scripts.create_user"""

import asyncio
import getpass
import sys

from pydantic import EmailStr, TypeAdapter, ValidationError

from streamcat_server.config import settings
from streamcat_server.database import Database
from streamcat_server.errors import DuplicateIdentity
from streamcat_server.services.accounts import CredentialStore


async def create_user(db: Database, nombre: str, username: str, email: str, password: str) -> int:
    """Create the account and return its id. Raises DuplicateIdentity if taken."""
    async with db.session() as session:
        user = await CredentialStore(session).create_account(nombre, username, password, email)
        return user.id


async def main() -> None:
    nombre = input("Name: ").strip()
    username = input("Username: ").strip()
    email = input("Email: ").strip()
    password = getpass.getpass("Password: ")
    if not nombre or not username or not email or not password:
        print("All fields required")
        sys.exit(1)
    try:
        email = TypeAdapter(EmailStr).validate_python(email)
    except ValidationError:
        print("Invalid email")
        sys.exit(1)

    db = Database.from_settings(settings)
    try:
        await db.create_all()
        user_id = await create_user(db, nombre, username, email, password)
    except DuplicateIdentity as e:
        print(f"User already exists ({e.field})")
        sys.exit(1)
    finally:
        await db.dispose()
    print(f"User created (id={user_id}).")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
