"""Account endpoints for both portals: login, registration, session refresh, settings."""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..http import ApiClient
from ..models import (
    EmailChange,
    PasswordChange,
    PersonalInfoUpdate,
    StudentRegisterParams,
    TutorRegisterParams,
    UserProfile,
)
from ..storage import USER_FULLNAME_KEY, USER_ID_KEY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortalPaths:
    login: str
    register: str
    me: str
    refresh: str
    logout: str
    settings: str


PORTALS = {
    "student": PortalPaths(
        login="/student/login",
        register="/student/register",
        me="/student/me",
        refresh="/refresh",
        logout="/logout",
        settings="/user",
    ),
    "tutor": PortalPaths(
        login="/tutor/login",
        register="/tutor/register",
        me="/tutor/me",
        refresh="/tutor/refresh",
        logout="/tutor/logout",
        settings="/tutor/user",
    ),
}


class AuthApi:
    """Wraps the account endpoints of the student or tutor portal."""

    def __init__(
        self,
        client: ApiClient,
        portal: str = "student",
        refresh_path: Optional[str] = None,
    ):
        """
        Args:
            client: Shared API client (owns the cookie session)
            portal: "student" or "tutor"
            refresh_path: Overrides the portal's session refresh endpoint; the
                student server also exposes "/student/refresh"
        """
        if portal not in PORTALS:
            raise ValueError(f"Unknown portal: {portal!r}")
        self.client = client
        self.portal = portal
        self.paths = PORTALS[portal]
        self.refresh_path = refresh_path or self.paths.refresh

    def _cache_user(self, body: Any) -> None:
        user = body.get("user") if isinstance(body, dict) else None
        if not isinstance(user, dict):
            return
        profile = UserProfile.model_validate(user)
        self.client.store.set(USER_ID_KEY, profile.user_id)
        self.client.store.set(USER_FULLNAME_KEY, profile.full_name)

    async def login(self, email: str, password: str) -> dict:
        """Log in and cache the user's id and name locally."""
        self.client.set_login_in_progress(True)
        try:
            body = await self.client.request(
                "POST", self.paths.login, json={"email": email, "password": password}
            )
        finally:
            self.client.set_login_in_progress(False)
        self._cache_user(body)
        logger.info("Logged in to %s portal as %s", self.portal, email)
        return body

    async def register(self, params: Union[StudentRegisterParams, TutorRegisterParams]) -> dict:
        return await self.client.request("POST", self.paths.register, json=params.to_wire())

    async def me(self) -> UserProfile:
        body = await self.client.request("GET", self.paths.me)
        user = body.get("user", body) if isinstance(body, dict) else body
        return UserProfile.model_validate(user)

    async def refresh_session(self) -> dict:
        """Extend the cookie session. Returns the raw body (`success` flag included)."""
        return await self.client.request("POST", self.refresh_path)

    async def logout(self) -> dict:
        try:
            return await self.client.request("POST", self.paths.logout)
        finally:
            self.client.force_auth_cleanup()

    async def update_personal_info(self, params: PersonalInfoUpdate) -> dict:
        return await self.client.request(
            "PUT", f"{self.paths.settings}/personal-info", json=params.to_wire()
        )

    async def update_email(
        self,
        new_email: str,
        confirm_email: str,
        current_password: str,
        current_email: str = "",
    ) -> dict:
        """Change the account email after the settings-form checks pass."""
        EmailChange(
            new_email=new_email,
            confirm_email=confirm_email,
            current_password=current_password,
            current_email=current_email,
        ).check()
        return await self.client.request(
            "PUT",
            f"{self.paths.settings}/email",
            json={"newEmail": new_email, "currentPassword": current_password},
        )

    async def update_password(
        self,
        current_password: str,
        new_password: str,
        confirm_password: str,
    ) -> dict:
        """Change the password after the settings-form checks pass."""
        PasswordChange(
            current_password=current_password,
            new_password=new_password,
            confirm_password=confirm_password,
        ).check()
        return await self.client.request(
            "PUT",
            f"{self.paths.settings}/password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )
