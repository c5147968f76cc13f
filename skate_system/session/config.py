"""
Session Persistence Configuration
"""

from dataclasses import dataclass

APP_NAMESPACE = 'skate_sense'


@dataclass
class StoreConfig:
    """Key-value store settings"""

    database_url: str = 'sqlite:///skate_sense.db'
    namespace: str = APP_NAMESPACE

    # Keys inside the namespace
    sessions_key: str = 'sessions'
    motions_key: str = 'motions'
    settings_key: str = 'settings'

    echo_sql: bool = False

    @classmethod
    def in_memory(cls) -> 'StoreConfig':
        """
        Create a configuration backed by an in-memory SQLite database.

        Used by tests and throwaway CLI runs.
        """
        return cls(database_url='sqlite://')
