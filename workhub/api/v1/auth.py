from fastapi import APIRouter, Depends, Response, status

from workhub.core.config import settings
from workhub.core.deps import (
    TOKEN_COOKIE, get_current_principal, get_guest_access_service, get_store, get_user_service
)
from workhub.db.store import EntityStore
from workhub.models.user import User, UserRole
from workhub.schemas.auth import (
    AuthResponse, ChangeCodeRequest, CodeLoginRequest, GuestLoginRequest, LoginRequest, SignupRequest
)
from workhub.schemas.user import ProfileResponse
from workhub.services.guest_access import GuestAccessService
from workhub.services.identity import IdentityResolver, Principal
from workhub.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])

HOME_BY_ROLE = {
    UserRole.ADMIN: "/admin",
    UserRole.LEAD: "/lead",
    UserRole.MEMBER: "/member",
}


def _set_token_cookie(response: Response, token: str, max_age_minutes: int) -> None:
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        secure=not settings.DEBUG,
        max_age=max_age_minutes * 60,
    )


def _auth_response(response: Response, user: User, token: str) -> AuthResponse:
    _set_token_cookie(response, token, settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return AuthResponse(
        access_token=token,
        user={"id": user.id, "name": user.name, "email": user.email, "role": user.role.value},
        redirect_to=HOME_BY_ROLE[user.role],
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    data: SignupRequest,
    response: Response,
    service: UserService = Depends(get_user_service),
):
    user, token = service.signup(data)
    return _auth_response(response, user, token)


@router.post("/login", response_model=AuthResponse)
def login(
    data: LoginRequest,
    response: Response,
    service: UserService = Depends(get_user_service),
):
    user, token = service.login(data.email, data.password)
    return _auth_response(response, user, token)


@router.post("/login-with-code", response_model=AuthResponse)
def login_with_code(
    data: CodeLoginRequest,
    response: Response,
    service: UserService = Depends(get_user_service),
):
    user, token = service.login_with_code(data.access_code)
    return _auth_response(response, user, token)


@router.post("/login-with-project-token", response_model=AuthResponse)
def login_with_project_token(
    data: GuestLoginRequest,
    response: Response,
    service: GuestAccessService = Depends(get_guest_access_service),
):
    token, principal, project = service.redeem(data.access_code)
    _set_token_cookie(response, token, settings.GUEST_TOKEN_EXPIRE_MINUTES)
    return AuthResponse(
        access_token=token,
        user={
            "id": principal.id,
            "name": principal.email.split("@")[0],
            "email": principal.email,
            "role": principal.role.value,
            "isGuest": True,
            "projectId": project.id,
            "projectName": project.name,
        },
        redirect_to="/guest",
    )


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE)
    return {"message": "Logged out"}


@router.get("/me", response_model=ProfileResponse)
def me(
    principal: Principal = Depends(get_current_principal),
    store: EntityStore = Depends(get_store),
):
    return IdentityResolver.load_profile(store, principal)


@router.post("/change-code")
def change_access_code(
    data: ChangeCodeRequest,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    service.change_access_code(principal, data.new_access_code)
    return {"message": "Access code updated successfully"}
