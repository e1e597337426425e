from fastapi import APIRouter

from src.marketplace.api.api_v1.endpoints import auth, products, subscriptions, users

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
