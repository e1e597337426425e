from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from src.marketplace.api.access_deps import attach_access_info, check_usage_limits
from src.marketplace.api.deps import ProductCrudDep
from src.marketplace.core.pbac import require_permission
from src.marketplace.db.session import SessionDep
from src.marketplace.models.core import User
from src.marketplace.schemas import ProductCreate, ProductListResponse, ProductResponse, UsageAction

router = APIRouter()


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission("create", "products"))],
)
async def create_product(
    product_in: ProductCreate,
    db: SessionDep,
    products: ProductCrudDep,
    current_user: Annotated[User, Depends(check_usage_limits(UsageAction.CREATE_PRODUCT))],
):
    """Create a product listing. Selling requires premium access within the plan limits."""
    return await products.create_for_owner(db, obj_in=product_in, owner_id=current_user.id)


@router.get("/mine", response_model=ProductListResponse)
async def read_my_products(
    request: Request,
    db: SessionDep,
    products: ProductCrudDep,
    current_user: Annotated[User, Depends(attach_access_info)],
) -> ProductListResponse:
    """List the caller's products."""
    owned = await products.get_by_owner(db, owner_id=current_user.id)
    return ProductListResponse(
        products=[ProductResponse.model_validate(product) for product in owned],
        has_premium_access=request.state.access_info["has_premium_access"],
    )
