from fastapi import APIRouter
from quantify.api.v1.endpoints import friends, transactions, users

api_router = APIRouter()

api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(friends.router, prefix="/friends", tags=["friends"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
