import logging
import uuid
from datetime import timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from callpanel.errors import ChannelNotFound, SlugConflict
from callpanel.models.call import Call
from callpanel.models.channel import Channel
from callpanel.schemas.call import CallEntity

logger = logging.getLogger("callpanel.channels")


def call_entity_from_row(row: Call) -> CallEntity:
    ts = row.called_at
    if ts is not None and ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return CallEntity(
        id=row.id,
        name=row.patient_name,
        destination=row.destination,
        professional=row.professional,
        timestamp=ts,
        is_priority=row.is_priority,
        raw_source=row.source_system,
    )


class ChannelService:
    """Channel lookups and tenant-scoped channel management"""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def find_by_slug(self, slug: str, active_only: bool = True) -> Optional[Channel]:
        with self._session_factory() as db:
            stmt = select(Channel).where(Channel.slug == slug)
            if active_only:
                stmt = stmt.where(Channel.is_active.is_(True))
            return db.execute(stmt).unique().scalar_one_or_none()

    def find_by_api_key_and_slug(self, api_key: str, slug: str) -> Optional[Channel]:
        """Active channel matching both secret and slug, with its tenant loaded"""
        with self._session_factory() as db:
            stmt = select(Channel).where(
                Channel.slug == slug,
                Channel.api_key == api_key,
                Channel.is_active.is_(True),
            )
            return db.execute(stmt).unique().scalar_one_or_none()

    def list_by_tenant(self, tenant_id: str) -> List[Channel]:
        with self._session_factory() as db:
            stmt = (
                select(Channel)
                .where(Channel.tenant_id == tenant_id, Channel.is_active.is_(True))
                .order_by(Channel.created_at.desc())
            )
            return list(db.execute(stmt).unique().scalars())

    def create_channel(self, tenant_id: Optional[str], slug: str, name: str, system: Optional[str] = None) -> Channel:
        with self._session_factory() as db:
            if db.execute(select(Channel.id).where(Channel.slug == slug)).first():
                raise SlugConflict(slug)
            channel = Channel(
                slug=slug,
                name=name,
                system=system,
                tenant_id=tenant_id,
                api_key=str(uuid.uuid4()),
                is_active=True,
            )
            db.add(channel)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise SlugConflict(slug) from e
            db.refresh(channel)
            logger.info("Channel created", extra={"channel": slug, "tenant_id": tenant_id})
            return channel

    def _owned(self, db, slug: str, tenant_id: str) -> Channel:
        stmt = select(Channel).where(
            Channel.slug == slug,
            Channel.tenant_id == tenant_id,
            Channel.is_active.is_(True),
        )
        channel = db.execute(stmt).unique().scalar_one_or_none()
        if channel is None:
            raise ChannelNotFound(slug)
        return channel

    def update_channel(self, slug: str, tenant_id: str, name: Optional[str] = None, system: Optional[str] = None) -> Channel:
        with self._session_factory() as db:
            channel = self._owned(db, slug, tenant_id)
            if name is not None:
                channel.name = name
            if system is not None:
                channel.system = system
            db.commit()
            db.refresh(channel)
            return channel

    def deactivate_channel(self, slug: str, tenant_id: str) -> None:
        with self._session_factory() as db:
            channel = self._owned(db, slug, tenant_id)
            channel.is_active = False
            db.commit()
            logger.info("Channel deactivated", extra={"channel": slug, "tenant_id": tenant_id})

    def rotate_channel_key(self, slug: str, tenant_id: str) -> Channel:
        """Replace the channel secret; every token it signed stops verifying"""
        with self._session_factory() as db:
            channel = self._owned(db, slug, tenant_id)
            channel.api_key = str(uuid.uuid4())
            db.commit()
            db.refresh(channel)
            logger.info("Channel key rotated", extra={"channel": slug, "tenant_id": tenant_id})
            return channel

    def history(self, slug: str, limit: int) -> Optional[List[CallEntity]]:
        """Latest calls of a channel, newest first; None when the channel is unknown"""
        with self._session_factory() as db:
            channel_id = db.execute(
                select(Channel.id).where(Channel.slug == slug, Channel.is_active.is_(True))
            ).scalar_one_or_none()
            if channel_id is None:
                return None
            rows = db.execute(
                select(Call)
                .where(Call.channel_id == channel_id)
                .order_by(Call.called_at.desc())
                .limit(limit)
            ).scalars()
            return [call_entity_from_row(r) for r in rows]
