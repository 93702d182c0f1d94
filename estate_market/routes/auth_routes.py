from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from estate_market.core.database import get_db_async
from estate_market.core.get_current_user import get_current_user
from estate_market.core.get_provider import get_mailer, get_notifier
from estate_market.core.responses import send_response
from estate_market.core.safe_handler import safe_handler
from estate_market.models.models import User
from estate_market.schemas.schema import (
    ChangePasswordSchema,
    ForgotPasswordSchema,
    LoginSchema,
    ProfileUpdateSchema,
    RefreshTokenSchema,
    RegisterSchema,
    ResendVerificationSchema,
    ResetPasswordSchema,
    UserOut,
    VerifyEmailSchema,
)
from estate_market.services.auth_service import AuthService

router = APIRouter(tags=["Authentication"])


@cbv(router)
class AuthRoutes:
    @router.post("/register")
    @safe_handler
    async def register(
        self,
        request: Request,
        data: RegisterSchema,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db_async),
        mailer=Depends(get_mailer),
        notifications=Depends(get_notifier),
    ):
        result = await AuthService(db, mailer, notifications).register(
            data, background_tasks
        )
        return send_response(
            result, message="User registered successfully", status_code=201
        )

    @router.post("/login")
    @safe_handler
    async def login(
        self,
        request: Request,
        data: LoginSchema,
        db: AsyncSession = Depends(get_db_async),
    ):
        result = await AuthService(db).login(data)
        return send_response(result, message="Login successful")

    @router.post("/refresh-token")
    @safe_handler
    async def refresh_token(
        self,
        request: Request,
        data: RefreshTokenSchema,
        db: AsyncSession = Depends(get_db_async),
    ):
        result = await AuthService(db).refresh(data.refresh_token)
        return send_response(result, message="Token refreshed successfully")

    @router.post("/logout")
    @safe_handler
    async def logout(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        await AuthService(db).logout(current_user)
        return send_response(None, message="Logout successful")

    @router.post("/forgot-password")
    @safe_handler
    async def forgot_password(
        self,
        request: Request,
        data: ForgotPasswordSchema,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db_async),
        mailer=Depends(get_mailer),
        notifications=Depends(get_notifier),
    ):
        message = await AuthService(db, mailer, notifications).forgot_password(
            data.email, background_tasks
        )
        return send_response(None, message=message)

    @router.post("/reset-password")
    @safe_handler
    async def reset_password(
        self,
        request: Request,
        data: ResetPasswordSchema,
        db: AsyncSession = Depends(get_db_async),
    ):
        await AuthService(db).reset_password(data.token, data.password)
        return send_response(None, message="Password reset successful")

    @router.post("/change-password")
    @safe_handler
    async def change_password(
        self,
        request: Request,
        data: ChangePasswordSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        await AuthService(db).change_password(
            current_user, data.current_password, data.new_password
        )
        return send_response(None, message="Password changed successfully")

    @router.post("/verify-email")
    @safe_handler
    async def verify_email(
        self,
        request: Request,
        data: VerifyEmailSchema,
        db: AsyncSession = Depends(get_db_async),
    ):
        user = await AuthService(db).verify_email(data.token)
        return send_response(user, message="Email verified successfully")

    @router.post("/resend-verification")
    @safe_handler
    async def resend_verification(
        self,
        request: Request,
        data: ResendVerificationSchema,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db_async),
        mailer=Depends(get_mailer),
        notifications=Depends(get_notifier),
    ):
        message = await AuthService(db, mailer, notifications).resend_verification(
            data.email, background_tasks
        )
        return send_response(None, message=message)

    @router.get("/profile")
    @safe_handler
    async def get_profile(
        self,
        request: Request,
        current_user: User = Depends(get_current_user),
    ):
        return send_response(
            UserOut.model_validate(current_user), message="Profile retrieved"
        )

    @router.patch("/profile")
    @safe_handler
    async def update_profile(
        self,
        request: Request,
        data: ProfileUpdateSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        user = await AuthService(db).update_profile(current_user, data)
        return send_response(user, message="Profile updated successfully")
