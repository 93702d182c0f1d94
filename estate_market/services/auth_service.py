import logging
from datetime import timedelta

from fastapi import BackgroundTasks

from estate_market.core.date_helper import utcnow
from estate_market.core.errors import AppError
from estate_market.core.mapper import ORMMapper
from estate_market.core.settings import settings
from estate_market.core.validators import (
    ACCESS,
    REFRESH,
    access_expiry_label,
    decode_token,
    encode_token,
)
from estate_market.email_notify.email_service import email_service
from estate_market.fire_and_forget.notifications import notifier
from estate_market.models.enums import ActivityAction, EntityModel
from estate_market.models.models import User
from estate_market.repos.user_repo import UserRepo
from estate_market.schemas.schema import AuthOut, TokenPairOut, UserOut
from estate_market.security.security_generate import user_generate
from estate_market.services.activity_service import ActivityService
from estate_market.services.property_filters import parse_uuid

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent."
)
RESEND_VERIFICATION_MESSAGE = (
    "If an unverified account with that email exists, a verification link has been sent."
)


class AuthService:
    def __init__(self, db, mailer=None, notifications=None):
        self.repo: UserRepo = UserRepo(db)
        self.activity: ActivityService = ActivityService(db)
        self.mailer = mailer or email_service
        self.notifier = notifications or notifier

    async def _issue_tokens(self, user: User) -> TokenPairOut:
        access_token = encode_token(user, ACCESS)
        refresh_token = encode_token(user, REFRESH)
        user.refresh_token = refresh_token
        await self.repo.save(user)
        return TokenPairOut(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=access_expiry_label(),
        )

    def _start_email_verification(self, user: User) -> str:
        raw, digest, expires = user_generate.issue(
            timedelta(hours=settings.EMAIL_VERIFY_EXPIRE_HOURS)
        )
        user.email_verification_token = digest
        user.email_verification_expires = expires
        return raw

    async def register(self, data, background_tasks: BackgroundTasks | None = None):
        if await self.repo.get_by_email(data.email):
            raise AppError.conflict("User with this email already exists")

        user = User(
            name=data.name,
            email=data.email,
            role=data.role,
            phone=data.phone,
            avatar=data.avatar,
            is_active=True,
            is_email_verified=False,
        )
        user.normalize()
        user.set_password(raw_password=data.password)
        raw_token = self._start_email_verification(user)
        await self.repo.create(user)

        tokens = await self._issue_tokens(user)
        await self.activity.log(
            user.id,
            ActivityAction.USER_REGISTERED,
            f"{user.name} registered as {user.role.value}",
            entity_id=user.id,
            entity_model=EntityModel.USER,
        )
        self.notifier.dispatch(
            background_tasks,
            self.mailer.send_verification_email,
            user.email,
            user.name,
            raw_token,
        )
        logger.info(f"Registered user {user.id} ({user.role.value})")

        return AuthOut(user=ORMMapper.one(user, UserOut), **tokens.model_dump())

    async def login(self, data) -> AuthOut:
        user = await self.repo.get_by_email(data.email)
        if not user or not user.check_password(raw_password=data.password):
            raise AppError.unauthorized("Invalid email or password")
        if not user.is_active:
            raise AppError.forbidden("Account is deactivated. Please contact support.")

        user.last_login = utcnow()
        tokens = await self._issue_tokens(user)
        await self.activity.log(
            user.id,
            ActivityAction.USER_LOGIN,
            f"{user.name} logged in",
            entity_id=user.id,
            entity_model=EntityModel.USER,
        )
        return AuthOut(user=ORMMapper.one(user, UserOut), **tokens.model_dump())

    async def refresh(self, refresh_token: str) -> TokenPairOut:
        payload = decode_token(refresh_token, REFRESH)
        user = await self.repo.by_id(_uuid_from(payload.get("sub")))
        if not user or user.refresh_token != refresh_token:
            raise AppError.unauthorized("Invalid refresh token")
        if not user.is_active:
            raise AppError.forbidden("Account is deactivated. Please contact support.")
        return await self._issue_tokens(user)

    async def logout(self, current_user: User) -> None:
        current_user.refresh_token = None
        await self.repo.save(current_user)

    async def forgot_password(self, email: str, background_tasks=None) -> str:
        user = await self.repo.get_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return FORGOT_PASSWORD_MESSAGE

        raw, digest, expires = user_generate.issue(
            timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        )
        user.password_reset_token = digest
        user.password_reset_expires = expires
        await self.repo.save(user)

        self.notifier.dispatch(
            background_tasks,
            self.mailer.send_password_reset_email,
            user.email,
            user.name,
            raw,
        )
        return FORGOT_PASSWORD_MESSAGE

    async def reset_password(self, token: str, new_password: str) -> None:
        user = await self.repo.get_by_reset_digest(user_generate.digest(token))
        if not user or user_generate.is_expired(user.password_reset_expires):
            raise AppError.bad_request("Invalid or expired reset token")

        user.set_password(new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        user.refresh_token = None
        await self.repo.save(user)
        logger.info(f"Password reset for user {user.id}")

    async def change_password(
        self, current_user: User, current_password: str, new_password: str
    ) -> None:
        if not current_user.check_password(current_password):
            raise AppError.unauthorized("Current password is incorrect")
        if current_password == new_password:
            raise AppError.bad_request(
                "New password must be different from the current password"
            )
        current_user.set_password(new_password)
        await self.repo.save(current_user)

    async def verify_email(self, token: str) -> UserOut:
        user = await self.repo.get_by_verification_digest(user_generate.digest(token))
        if not user or user_generate.is_expired(user.email_verification_expires):
            raise AppError.bad_request("Invalid or expired verification token")

        user.is_email_verified = True
        user.email_verification_token = None
        user.email_verification_expires = None
        await self.repo.save(user)
        return ORMMapper.one(user, UserOut)

    async def resend_verification(self, email: str, background_tasks=None) -> str:
        user = await self.repo.get_by_email(email)
        if user and not user.is_email_verified:
            raw = self._start_email_verification(user)
            await self.repo.save(user)
            self.notifier.dispatch(
                background_tasks,
                self.mailer.send_verification_email,
                user.email,
                user.name,
                raw,
            )
        return RESEND_VERIFICATION_MESSAGE

    async def update_profile(self, current_user: User, data) -> UserOut:
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"]:
            current_user.name = changes["name"].strip()
        if "phone" in changes:
            current_user.phone = changes["phone"]
        if "avatar" in changes:
            current_user.avatar = str(changes["avatar"]) if changes["avatar"] else None
        await self.repo.save(current_user)
        return ORMMapper.one(current_user, UserOut)


def _uuid_from(value):
    user_id = parse_uuid(value)
    if user_id is None:
        raise AppError.unauthorized("Invalid refresh token")
    return user_id
