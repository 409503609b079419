"""Persisted API key pool cursor shared by every caller of a provider."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update as sa_update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from venture_forge.storage.common import to_utc_aware_datetime, utc_now
from venture_forge.storage.sqlmodel_models import ApiKeyPoolState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KeyCursor:
    """Position in a key pool plus the number of rotations that led there."""

    index: int
    rotations: int


@dataclass(slots=True)
class KeyPoolStateView:
    """Readable key pool cursor for CLI reporting."""

    service: str
    key_index: int
    rotations: int
    updated_at: datetime


class KeyRotationManager:
    """Owns the persisted key index per service.

    The cursor only moves forward through :meth:`rotate`, a compare-and-set on
    the index and rotation count the caller observed. Concurrent callers that
    hit the same rate limit advance the cursor once per failure wave, even
    after the index wraps around a small pool.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def current_cursor(self, service: str) -> KeyCursor:
        """Return the persisted cursor, creating it at index 0 on first use."""

        return await asyncio.to_thread(self._read_or_init, service)

    async def rotate(self, service: str, *, observed: KeyCursor, pool_size: int) -> KeyCursor:
        """Advance past ``observed`` unless another caller already moved the cursor.

        Returns the persisted cursor after the attempt, whoever moved it.
        """

        if pool_size <= 0:
            raise ValueError("pool_size must be positive")
        return await asyncio.to_thread(
            self._compare_and_advance,
            service,
            observed,
            pool_size,
        )

    def list_states(self) -> list[KeyPoolStateView]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(ApiKeyPoolState).order_by(col(ApiKeyPoolState.service).asc()),
            ).all()
        return [
            KeyPoolStateView(
                service=row.service,
                key_index=row.key_index,
                rotations=row.rotations,
                updated_at=to_utc_aware_datetime(row.updated_at),
            )
            for row in rows
        ]

    def _read_or_init(self, service: str) -> KeyCursor:
        with Session(self.engine) as session:
            row = session.get(ApiKeyPoolState, service)
            if row is not None:
                return KeyCursor(index=row.key_index, rotations=row.rotations)
            session.add(ApiKeyPoolState(service=service, key_index=0, updated_at=utc_now()))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                row = session.get(ApiKeyPoolState, service)
                if row is None:
                    raise
                return KeyCursor(index=row.key_index, rotations=row.rotations)
            logger.debug("Initialized key pool cursor for %s", service)
            return KeyCursor(index=0, rotations=0)

    def _compare_and_advance(
        self,
        service: str,
        observed: KeyCursor,
        pool_size: int,
    ) -> KeyCursor:
        self._read_or_init(service)
        advanced = KeyCursor(
            index=(observed.index + 1) % pool_size,
            rotations=observed.rotations + 1,
        )
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(ApiKeyPoolState)
                .where(
                    col(ApiKeyPoolState.service) == service,
                    col(ApiKeyPoolState.key_index) == observed.index,
                    col(ApiKeyPoolState.rotations) == observed.rotations,
                )
                .values(
                    key_index=advanced.index,
                    rotations=advanced.rotations,
                    updated_at=utc_now(),
                ),
            )
            if result.rowcount == 1:
                session.commit()
                logger.warning(
                    "Rotated %s API key: index %d -> %d (pool size %d)",
                    service,
                    observed.index,
                    advanced.index,
                    pool_size,
                )
                return advanced
            session.rollback()
            row = session.get(ApiKeyPoolState, service)
            if row is None:
                raise RuntimeError(f"Key pool state vanished for service {service!r}")
            logger.info(
                "Skipped %s key rotation: cursor already moved from %d to %d",
                service,
                observed.index,
                row.key_index,
            )
            return KeyCursor(index=row.key_index, rotations=row.rotations)
