"""
Base Data Access Object (DAO) class.

WHY: The DAO pattern keeps SQL out of the services; the analytics engine
only ever sees domain schemas produced by the DAOs.
"""

from typing import Generic, TypeVar, Type, Optional, Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from survey_insights.models.base import Base

# Type variable for model class
ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """
    Base Data Access Object with the lookups shared by all models.

    Type Parameters:
        ModelType: The SQLAlchemy model class this DAO manages
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize DAO with model class and database session.

        Args:
            model: The SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """
        Retrieve a single record by primary key.

        Returns:
            The model instance if found, None otherwise
        """
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()
