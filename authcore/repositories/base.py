"""Generic repository base."""
from typing import Generic, Optional, Type, TypeVar
from uuid import UUID

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base repository with common lookups.

    Subclasses pass their model class and add query methods.
    Every write commits the session it was given.
    """

    def __init__(self, session, model: Type[T]):
        """
        Initialize repository.

        Args:
            session: SQLAlchemy session
            model: Model class handled by this repository
        """
        self._session = session
        self._model = model

    def find_by_id(self, id: UUID) -> Optional[T]:
        """Find entity by primary key."""
        return self._session.get(self._model, id)
