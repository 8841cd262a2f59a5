"""
Postboard Backend - Tag Repository
==================================

What:  Get-or-create of tags by normalized name.
How:   PostgreSQL and SQLite: one INSERT ... ON CONFLICT (name) DO NOTHING for all
       names, then a SELECT to read the ids back. Two requests inserting the same
       new name concurrently both end up with the single surviving row.

       Other dialects: look up, then insert inside a SAVEPOINT; an IntegrityError
       on the unique constraint means another transaction won, so the row is
       looked up again.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.models.tag import Tag
from postboard.services.tags import normalize_tags

logger = logging.getLogger(__name__)

_INSERT_IGNORE = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class TagRepository:

    async def find_by_name(self, db: AsyncSession, name: str) -> Optional[Tag]:
        result = await db.execute(select(Tag).where(Tag.name == name))
        return result.scalar_one_or_none()

    async def get_or_create_many(self, db: AsyncSession, names: Iterable[str]) -> List[Tag]:
        """
        Return one Tag per distinct normalized name, in first-seen order.

        Names are normalized here as well, so a Tag row can never be stored in
        any other form. Blank names are skipped.
        """
        wanted = [name for name in normalize_tags(names) if name]
        if not wanted:
            return []

        insert_ignore = _INSERT_IGNORE.get(db.get_bind().dialect.name)
        if insert_ignore is None:
            return [await self._get_or_create_one(db, name) for name in wanted]

        await db.execute(
            insert_ignore(Tag.__table__)
            .values([{"name": name} for name in wanted])
            .on_conflict_do_nothing(index_elements=["name"])
        )
        result = await db.execute(select(Tag).where(Tag.name.in_(wanted)))
        by_name = {tag.name: tag for tag in result.scalars().all()}
        return [by_name[name] for name in wanted]

    async def _get_or_create_one(self, db: AsyncSession, name: str) -> Tag:
        existing = await self.find_by_name(db, name)
        if existing is not None:
            return existing

        tag = Tag(name=name)
        try:
            async with db.begin_nested():
                db.add(tag)
        except IntegrityError:
            logger.info("Tag '%s' was created concurrently; reusing existing row", name)
            existing = await self.find_by_name(db, name)
            if existing is None:
                raise
            return existing
        return tag


tag_repository = TagRepository()
