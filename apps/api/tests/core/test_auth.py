"""
Unit tests for bearer-token actors and the cron secret.
"""

from datetime import timedelta
from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi import HTTPException

from app.core.auth import (
    ROLE_ADMIN,
    ROLE_APPLICANT,
    actor_from_token,
    get_current_admin,
    verify_cron_secret,
)
from app.core.config import settings
from app.core.security import create_access_token


class TestActorFromToken:
    def test_valid_applicant_token(self):
        user_id = uuid4()
        token = create_access_token(str(user_id), ROLE_APPLICANT, email="a@test.com")

        actor = actor_from_token(token)

        assert actor.id == user_id
        assert actor.role == ROLE_APPLICANT
        assert actor.email == "a@test.com"
        assert not actor.is_admin

    def test_admin_token(self):
        actor = actor_from_token(create_access_token(str(uuid4()), ROLE_ADMIN))
        assert actor.is_admin

    def test_expired_token(self):
        token = create_access_token(
            str(uuid4()), ROLE_APPLICANT, expires_delta=timedelta(seconds=-5)
        )
        with pytest.raises(HTTPException) as exc_info:
            actor_from_token(token)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["error"] == "INVALID_TOKEN"

    def test_unknown_role(self):
        with pytest.raises(HTTPException) as exc_info:
            actor_from_token(create_access_token(str(uuid4()), "superuser"))
        assert exc_info.value.detail["error"] == "INVALID_TOKEN_CLAIMS"

    def test_bad_subject(self):
        with pytest.raises(HTTPException) as exc_info:
            actor_from_token(create_access_token("not-a-uuid", ROLE_APPLICANT))
        assert exc_info.value.detail["error"] == "INVALID_TOKEN_CLAIMS"

    def test_garbage(self):
        with pytest.raises(HTTPException):
            actor_from_token("not.a.jwt")


class TestGetCurrentAdmin:
    @pytest.mark.asyncio
    async def test_applicant_forbidden(self, applicant):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_admin(applicant)
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_passes(self, admin):
        assert await get_current_admin(admin) is admin


class TestVerifyCronSecret:
    @pytest.mark.asyncio
    async def test_matching_secret(self):
        with patch.object(settings, "cron_secret", "s3cret"):
            await verify_cron_secret("Bearer s3cret")

    @pytest.mark.asyncio
    async def test_wrong_secret(self):
        with patch.object(settings, "cron_secret", "s3cret"), pytest.raises(HTTPException):
            await verify_cron_secret("Bearer guess")

    @pytest.mark.asyncio
    async def test_missing_header(self):
        with patch.object(settings, "cron_secret", "s3cret"), pytest.raises(HTTPException):
            await verify_cron_secret(None)

    @pytest.mark.asyncio
    async def test_unconfigured_secret_rejects_everything(self):
        with patch.object(settings, "cron_secret", None), pytest.raises(HTTPException):
            await verify_cron_secret("Bearer None")
