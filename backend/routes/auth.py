from fastapi import APIRouter, Depends, HTTPException, status

from deps import get_user_directory
from services.auth import issue_token
from services.errors import AuthError, ValidationError
from services.user_directory import UserDirectory

router = APIRouter(tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: dict, users: UserDirectory = Depends(get_user_directory)):
    try:
        users.register(payload.get("username"), payload.get("password"))
    except (ValidationError, AuthError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"message": "User registered successfully"}


@router.post("/login")
def login(payload: dict, users: UserDirectory = Depends(get_user_directory)):
    try:
        user = users.verify(payload.get("username"), payload.get("password"))
    except AuthError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"token": issue_token(user.username)}
