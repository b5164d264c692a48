from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import Preference

log = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"


class PreferencesRepo:
    def __init__(self, session: AsyncSession) -> None:
        self.s = session

    async def get(self, key: str, scope: str = GLOBAL_SCOPE) -> Optional[dict]:
        q = select(Preference).where(Preference.scope == scope, Preference.key == key)
        row = (await self.s.execute(q)).scalars().first()
        return row.value if row else None

    async def set(self, key: str, value: dict, scope: str = GLOBAL_SCOPE) -> None:
        q = select(Preference).where(Preference.scope == scope, Preference.key == key)
        row = (await self.s.execute(q)).scalars().first()
        if row is None:
            self.s.add(Preference(scope=scope, key=key, value=value))
        else:
            row.value = value

    async def delete(self, key: str, scope: str = GLOBAL_SCOPE) -> bool:
        q = select(Preference).where(Preference.scope == scope, Preference.key == key)
        row = (await self.s.execute(q)).scalars().first()
        if row is None:
            return False
        await self.s.delete(row)
        return True


class StoredPreference:
    """The persisted locale preference: one code under one key."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], key: str = "locale") -> None:
        self._sessions = session_factory
        self.key = key

    async def load(self) -> Optional[str]:
        async with self._sessions() as s:
            value = await PreferencesRepo(s).get(self.key)
        code = (value or {}).get("code")
        return code if isinstance(code, str) and code else None

    async def save(self, code: str) -> None:
        async with self._sessions() as s:
            await PreferencesRepo(s).set(self.key, {"code": code})
            await s.commit()
        log.debug("Persisted locale preference %s=%s", self.key, code)

    async def clear(self) -> None:
        async with self._sessions() as s:
            if await PreferencesRepo(s).delete(self.key):
                await s.commit()
