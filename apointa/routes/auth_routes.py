from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apointa.auth.dependencies import get_current_user
from apointa.models.user import User

router = APIRouter(tags=["auth"])


class CurrentUserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str


@router.get("/me", response_model=CurrentUserResponse)
def me(current_user: User = Depends(get_current_user)):
    return CurrentUserResponse(
        id=current_user.id,
        name=current_user.name,
        email=current_user.email,
        role=current_user.role or "patient",
    )
