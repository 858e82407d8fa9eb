"""
Base repository class with common CRUD operations using async SQLAlchemy.
Provides generic database operations that can be extended by specific repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from maskan.database import Base
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type
import uuid
import logging

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class providing common CRUD operations.
    Every write commits its own unit of work and rolls back on failure.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize repository with model class and database session.

        Args:
            model: SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    async def create(self, obj_in: Dict[str, Any]) -> ModelType:
        """
        Create a new record in the database.

        Args:
            obj_in: Dictionary of field values for the new record

        Returns:
            Created model instance
        """
        return await self.add(self.model(**obj_in))

    async def add(self, db_obj: ModelType) -> ModelType:
        """Persist a new instance, together with anything cascaded from it."""
        try:
            self.db.add(db_obj)
            await self.db.commit()
            await self.db.refresh(db_obj)
            logger.debug(f"Created {self.model.__name__} with id: {db_obj.id}")
            return db_obj
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create {self.model.__name__}: {e}")
            raise

    async def save(self, db_obj: ModelType) -> ModelType:
        """Commit pending changes made to a loaded instance."""
        try:
            await self.db.commit()
            await self.db.refresh(db_obj)
            logger.debug(f"Updated {self.model.__name__} with id: {db_obj.id}")
            return db_obj
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update {self.model.__name__} {db_obj.id}: {e}")
            raise

    async def remove(self, db_obj: ModelType) -> None:
        """Delete a loaded instance; relationship cascades apply."""
        try:
            await self.db.delete(db_obj)
            await self.db.commit()
            logger.debug(f"Deleted {self.model.__name__} with id: {db_obj.id}")
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete {self.model.__name__} {db_obj.id}: {e}")
            raise

    async def get_by_id(self, id: uuid.UUID) -> Optional[ModelType]:
        """
        Get a record by its ID.

        Returns:
            Model instance if found, None otherwise
        """
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        obj = result.scalar_one_or_none()

        if obj is None:
            logger.debug(f"{self.model.__name__} with id {id} not found")
        return obj

    async def get_by_field(self, field: str, value: Any) -> Optional[ModelType]:
        """
        Get the first record whose ``field`` equals ``value``.

        Raises:
            ValueError: If the model has no such field
        """
        if not hasattr(self.model, field):
            raise ValueError(f"Field '{field}' does not exist on {self.model.__name__}")

        query = (
            select(self.model)
            .where(getattr(self.model, field) == value)
            .order_by(self.model.created_at)
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_multi(self, filters: Optional[Dict[str, Any]] = None) -> List[ModelType]:
        """
        Get every record matching equality filters, oldest first.

        Args:
            filters: Field name to value; ``None`` values are ignored

        Returns:
            List of model instances, empty when nothing matches
        """
        query = select(self.model)

        for field, value in (filters or {}).items():
            if value is not None and hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)

        query = query.order_by(self.model.created_at, self.model.id)
        result = await self.db.execute(query)
        objects = result.scalars().all()

        logger.debug(f"Retrieved {len(objects)} {self.model.__name__} records")
        return list(objects)
