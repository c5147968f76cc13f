"""
Session Store
Namespaced key-value persistence for session history, tricks and settings

Values are JSON documents stored through SQLAlchemy in a single
``kv_store`` table keyed by (namespace, key). A history that fails to
parse is reset to empty instead of blocking new sessions.
"""

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from skate_system.errors import PersistenceCorrupt
from skate_system.models import MotionEvent, Session, Stance

from .config import StoreConfig
from .library import TrickLibrary

logger = logging.getLogger(__name__)

Base = declarative_base()


class StoredValue(Base):
    __tablename__ = 'kv_store'

    namespace = Column(String(64), primary_key=True)
    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False,
                        default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<StoredValue({self.namespace}/{self.key})>"


def decode_history(raw: str) -> List[Session]:
    """
    Parse a stored history document.

    Raises:
        PersistenceCorrupt: if the document is not a valid session list
    """
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError(f"expected a list, got {type(data).__name__}")
        return [Session.from_dict(item) for item in data]
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise PersistenceCorrupt(f"Stored session history is unreadable: {e}") from e


def encode_history(sessions: List[Session]) -> str:
    return json.dumps([s.to_dict() for s in sessions])


class SessionStore:
    """
    Persistence layer for finished sessions.

    Usage:
        store = SessionStore()
        history = store.load_history()
        store.append_session(session)
        store.close()
    """

    def __init__(self, config: Optional[StoreConfig] = None):
        self.config = config if config else StoreConfig()

        try:
            self.engine = self._create_engine()
            Base.metadata.create_all(self.engine)
            self.Session = sessionmaker(bind=self.engine)
            logger.info(f"✓ Session store ready ({self.config.database_url}, namespace '{self.config.namespace}')")
        except SQLAlchemyError as e:
            logger.error(f"✗ Failed to open session store: {e}")
            raise

    def _create_engine(self):
        url = self.config.database_url
        if url in ('sqlite://', 'sqlite:///:memory:'):
            # One shared connection, otherwise every checkout sees an empty database
            return create_engine(url, echo=self.config.echo_sql, poolclass=StaticPool,
                                 connect_args={'check_same_thread': False})
        return create_engine(url, echo=self.config.echo_sql)

    # ------------------------------------------------------------------
    # Raw key-value access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        with self.Session() as db:
            row = db.get(StoredValue, (self.config.namespace, key))
            return row.value if row else None

    def put(self, key: str, value: str):
        with self.Session() as db:
            try:
                row = db.get(StoredValue, (self.config.namespace, key))
                if row is None:
                    db.add(StoredValue(namespace=self.config.namespace, key=key, value=value))
                else:
                    row.value = value
                    row.updated_at = datetime.now(timezone.utc)
                db.commit()
            except SQLAlchemyError as e:
                logger.error(f"Error writing '{key}': {e}")
                db.rollback()
                raise

    def delete(self, key: str):
        with self.Session() as db:
            row = db.get(StoredValue, (self.config.namespace, key))
            if row is not None:
                db.delete(row)
                db.commit()

    # ------------------------------------------------------------------
    # Session history
    # ------------------------------------------------------------------

    def load_history(self) -> List[Session]:
        """Return all stored sessions (empty if none or if the data is corrupt)."""
        raw = self.get(self.config.sessions_key)
        if raw is None:
            return []

        try:
            return decode_history(raw)
        except PersistenceCorrupt as e:
            logger.error(f"✗ {e} - resetting to an empty history")
            self.put(self.config.sessions_key, encode_history([]))
            return []

    def save_history(self, sessions: List[Session]):
        self.put(self.config.sessions_key, encode_history(sessions))

    def append_session(self, session: Session):
        history = self.load_history()
        history.append(session)
        self.save_history(history)
        logger.info(f"✓ Saved session {session.id} ({len(history)} in history)")

    def update_session(self, session: Session) -> bool:
        history = self.load_history()
        for i, existing in enumerate(history):
            if existing.id == session.id:
                history[i] = session
                self.save_history(history)
                return True
        logger.warning(f"Session {session.id} not found, nothing updated")
        return False

    def delete_session(self, session_id: str) -> bool:
        history = self.load_history()
        remaining = [s for s in history if s.id != session_id]
        if len(remaining) == len(history):
            return False
        self.save_history(remaining)
        logger.info(f"Deleted session {session_id}")
        return True

    def labeled_history(self) -> List[MotionEvent]:
        """Every labelled event across the stored history."""
        return [e for s in self.load_history() for e in s.labeled_events()]

    # ------------------------------------------------------------------
    # Trick library and settings
    # ------------------------------------------------------------------

    def load_library(self) -> TrickLibrary:
        raw = self.get(self.config.motions_key)
        if raw is None:
            return TrickLibrary()
        try:
            return TrickLibrary.from_list(json.loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"✗ Stored trick library is unreadable ({e}), using defaults")
            return TrickLibrary()

    def save_library(self, library: TrickLibrary):
        self.put(self.config.motions_key, json.dumps(library.to_list()))

    def load_settings(self) -> Optional[Stance]:
        raw = self.get(self.config.settings_key)
        if raw is None:
            return None
        try:
            return Stance(json.loads(raw)['stance'])
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"✗ Stored settings are unreadable ({e})")
            return None

    def save_settings(self, stance: Stance):
        self.put(self.config.settings_key, json.dumps({'stance': stance.value}))

    def close(self):
        self.engine.dispose()
        logger.info("Session store closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        return f"<SessionStore(namespace={self.config.namespace})>"
