from fastapi import APIRouter

from delivery_ledger.api.v1 import analytics, orders, ratings, users

api_router = APIRouter()

api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(ratings.router, prefix="/ratings", tags=["ratings"])
