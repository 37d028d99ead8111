from typing import Any, Optional

from sqlalchemy.orm import sessionmaker

from callpanel.models.call import Call
from callpanel.schemas.call import CallEntity
from callpanel.services.normalizer import SGA_SOURCE


class CallService:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def insert_call(self, channel_id: str, call: CallEntity, raw_payload: Optional[Any] = None) -> str:
        """Persist a normalized call; returns the id assigned by the store"""
        with self._session_factory() as db:
            row = Call(
                channel_id=channel_id,
                patient_name=call.name,
                destination=call.destination,
                professional=call.professional,
                ticket=call.name if call.raw_source == SGA_SOURCE else None,
                is_priority=call.is_priority,
                source_system=call.raw_source,
                raw_payload=raw_payload,
                called_at=call.timestamp,
            )
            db.add(row)
            db.commit()
            return row.id
