from fastapi import APIRouter

from packages.users.models.schemas.user import UserCountResponse
from packages.users.repositories.user_repository import UserRepository

router = APIRouter()


@router.get("/user-count", response_model=UserCountResponse, response_model_by_alias=True)
async def user_count():
    """Number of users with a confirmed payment method."""
    return UserCountResponse(user_count=await UserRepository().count())
