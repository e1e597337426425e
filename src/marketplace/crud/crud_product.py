from typing import List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from src.marketplace.crud.base import CRUDBase
from src.marketplace.models.core import Product
from src.marketplace.schemas.product import ProductCreate


class CRUDProduct(CRUDBase[Product, ProductCreate, None]):
    """CRUD operations for product listings."""

    async def get_by_owner(self, db: AsyncSession, *, owner_id: int) -> List[Product]:
        """Get all products for an owner."""
        stmt = select(Product).where(Product.owner_id == owner_id).order_by(Product.id.asc())
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_owner(self, db: AsyncSession, *, owner_id: int) -> int:
        stmt = select(func.count()).select_from(Product).where(Product.owner_id == owner_id)
        result = await db.execute(stmt)
        return result.scalar_one()

    async def create_for_owner(self, db: AsyncSession, *, obj_in: ProductCreate, owner_id: int) -> Product:
        data = obj_in.model_dump()
        data["owner_id"] = owner_id
        return await self.create(db, obj_in=data)
