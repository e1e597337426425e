from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel

from src.marketplace.models.base import Base, utcnow

SQLModelType = TypeVar("SQLModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[SQLModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, sql_model: Type[SQLModelType]):
        """
        CRUD object with default methods to Create, Read, Update (CRUD).
        Rows are never physically deleted by this layer.
        **Parameters**
        * `sql_model`: A SQLAlchemy model class
        """
        self.sql_model = sql_model

    async def _persist(self, db: AsyncSession, db_obj: SQLModelType, *, commit: bool) -> SQLModelType:
        """Commit and refresh, or only flush when the caller owns the transaction."""
        db.add(db_obj)
        if commit:
            await db.commit()
            await db.refresh(db_obj)
        else:
            await db.flush()
        return db_obj

    async def get(self, db: AsyncSession, *, id: int) -> Optional[SQLModelType]:
        """Get a single object by internal ID."""
        stmt = select(self.sql_model).where(self.sql_model.id == id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_uuid(self, db: AsyncSession, *, uuid: str) -> Optional[SQLModelType]:
        """Get a single object by external identifier."""
        stmt = select(self.sql_model).where(self.sql_model.uuid == uuid)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self, db: AsyncSession, *, obj_in: Union[CreateSchemaType, Dict[str, Any]], commit: bool = True
    ) -> SQLModelType:
        """Create a new object."""
        obj_in_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        db_obj = self.sql_model(**obj_in_data)
        return await self._persist(db, db_obj, commit=commit)

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: SQLModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        commit: bool = True,
    ) -> SQLModelType:
        """Update an object. Only supplied fields change; `updated_at` is always bumped."""
        update_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for field in update_data:
            setattr(db_obj, field, update_data[field])
        db_obj.updated_at = update_data.get("updated_at") or utcnow()
        return await self._persist(db, db_obj, commit=commit)
