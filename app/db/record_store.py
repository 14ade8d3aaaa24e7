import logging
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.models.find import Find
from app.utils.errors import FindNotFound, RecordDeleteFailed, RecordWriteFailed, StoreUnavailable

logger = logging.getLogger(__name__)


class SqlRecordStore:
    """Record Store backed by the ``finds`` table.

    A fresh Session is opened per call, so one store can be shared by
    requests and worker threads. Every SQLAlchemy failure is translated into
    the matching catalog error.
    """

    def __init__(self, engine):
        self.engine = engine

    def insert_record(self, fields: dict) -> Find:
        # id and created_at come from the model defaults, never from the caller
        fields = {k: v for k, v in fields.items() if k not in ("id", "created_at", "updated_at")}

        try:
            with Session(self.engine) as session:
                db_find = Find(**fields)
                session.add(db_find)
                session.commit()
                session.refresh(db_find)
                return db_find
        except SQLAlchemyError as e:
            logger.error("Error inserting find: %s", e)
            raise RecordWriteFailed("Failed to add find") from e

    def update_record(self, find_id: str, fields: dict) -> None:
        try:
            with Session(self.engine) as session:
                db_find = session.get(Find, find_id)

                if not db_find:
                    raise FindNotFound(find_id)

                for field, value in fields.items():
                    if field in ("id", "created_at"):
                        continue
                    setattr(db_find, field, value)

                db_find.updated_at = datetime.now(timezone.utc)

                session.add(db_find)
                session.commit()
        except SQLAlchemyError as e:
            logger.error("Error updating find %s: %s", find_id, e)
            raise RecordWriteFailed("Failed to update find") from e

    def delete_record(self, find_id: str) -> None:
        try:
            with Session(self.engine) as session:
                db_find = session.get(Find, find_id)

                # deleting a missing record is a no-op
                if db_find:
                    session.delete(db_find)
                    session.commit()
        except SQLAlchemyError as e:
            logger.error("Error deleting find %s: %s", find_id, e)
            raise RecordDeleteFailed("Failed to delete find") from e

    def get_record(self, find_id: str) -> Optional[Find]:
        try:
            with Session(self.engine) as session:
                return session.get(Find, find_id)
        except SQLAlchemyError as e:
            logger.error("Error getting find %s: %s", find_id, e)
            raise StoreUnavailable("Failed to load find") from e

    def list_records(self) -> List[Find]:
        try:
            with Session(self.engine) as session:
                return list(session.exec(select(Find).order_by(Find.created_at.desc())).all())
        except SQLAlchemyError as e:
            logger.error("Error getting finds: %s", e)
            raise StoreUnavailable("Failed to load finds") from e
