# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Verification code ledger: issue, validate, consume and sweep recovery codes.

A code moves from active to consumed, expired or deleted and never back.
Expiry is checked in every query against the ledger clock, so a stale row is
rejected even if no sweep has run since it expired. Each mutating call runs
in its own transaction and commits before returning.
"""

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from streamcat_server.models import VerificationCode

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600
CODE_MIN = 100000
CODE_MAX = 999999
ISSUE_ATTEMPTS = 2


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_code() -> str:
    """Uniform 6-digit code in [100000, 999999] from a CSPRNG."""
    return f"{CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1):06d}"


class CodeLedger:
    """Owns every VerificationCode row. Callers never mutate codes directly."""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow) -> None:
        self.db = db
        self.clock = clock

    def _active(self, email: str, code: str, now: datetime):
        return (
            VerificationCode.email == email,
            VerificationCode.code == code,
            VerificationCode.consumed.is_(False),
            VerificationCode.expires_at > now,
        )

    async def issue(self, email: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> VerificationCode:
        """Replace any code for ``email`` with a fresh one valid for ``ttl_seconds``.

        The unique index on ``email`` rejects the insert when a concurrent
        issue for the same address committed first; the replace is then run
        again once, which now sees and deletes that row.
        """
        now = self.clock()
        for attempt in range(1, ISSUE_ATTEMPTS + 1):
            try:
                swept = await self._delete_dead(now)
                await self.db.execute(
                    delete(VerificationCode).where(VerificationCode.email == email),
                    execution_options={"synchronize_session": "fetch"},
                )
                vc = VerificationCode(
                    email=email,
                    code=generate_code(),
                    expires_at=now + timedelta(seconds=ttl_seconds),
                    consumed=False,
                    created_at=now,
                )
                self.db.add(vc)
                await self.db.commit()
                break
            except IntegrityError:
                await self.db.rollback()
                if attempt == ISSUE_ATTEMPTS:
                    raise
                logger.info("Concurrent code issue for %s, replacing again", email)
            except Exception:
                await self.db.rollback()
                raise
        logger.debug("Swept %d dead codes before issuing for %s", swept, email)
        return vc

    async def validate(self, email: str, code: str) -> VerificationCode | None:
        """Return the active record matching email and code, without changing it."""
        result = await self.db.execute(
            select(VerificationCode).where(*self._active(email, code, self.clock()))
        )
        return result.scalar_one_or_none()

    async def consume(self, email: str, code: str) -> VerificationCode | None:
        """Mark the matching active record consumed and return it.

        The predicate and the flag flip are one conditional UPDATE, so two
        concurrent calls for the same code cannot both get the row.
        """
        now = self.clock()
        try:
            result = await self.db.execute(
                update(VerificationCode)
                .where(*self._active(email, code, now))
                .values(consumed=True, consumed_at=now)
                .returning(VerificationCode),
                execution_options={"synchronize_session": False, "populate_existing": True},
            )
            vc = result.scalar_one_or_none()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return vc

    async def sweep(self) -> int:
        """Delete every expired or consumed code. Returns the number removed."""
        try:
            count = await self._delete_dead(self.clock())
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.debug("Swept %d dead codes", count)
        return count

    async def _delete_dead(self, now: datetime) -> int:
        result = await self.db.execute(
            delete(VerificationCode)
            .where(or_(VerificationCode.expires_at <= now, VerificationCode.consumed.is_(True)))
            .returning(VerificationCode.id),
            execution_options={"synchronize_session": "fetch"},
        )
        return len(result.all())
