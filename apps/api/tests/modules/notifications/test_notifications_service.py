"""
Tests for notification creation and email delivery.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.core.auth import ROLE_ADMIN
from app.core.errors import AuthorizationError, NotFoundError
from app.modules.applications.models import ApplicationStatus
from app.modules.notifications.models import Notification, NotificationType
from app.modules.notifications.service import (
    deliver_emails,
    mark_notification_read,
    notify_admins,
    notify_applicant,
)

SERVICE = "app.modules.notifications.service"


def _notification(user_id=None, recipient_role=None):
    notification = MagicMock(spec=Notification)
    notification.id = uuid4()
    notification.type = NotificationType.COORDINATES_APPROVED
    notification.title = "Coordinates approved"
    notification.message = "Your project coordinates were approved."
    notification.link = "/applications/x"
    notification.user_id = user_id
    notification.recipient_role = recipient_role
    return notification


class TestNotify:
    @pytest.mark.asyncio
    async def test_applicant_notification_addressed_to_owner(
        self, mock_db, application_factory
    ):
        application = application_factory(ApplicationStatus.COORDINATE_APPROVED)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.create = AsyncMock()
            await notify_applicant(
                mock_db, application, NotificationType.COORDINATES_APPROVED, "t", "m"
            )

        kwargs = mock_repo.create.call_args.kwargs
        assert kwargs["user_id"] == application.user_id
        assert kwargs["link"] == f"/applications/{application.id}"

    @pytest.mark.asyncio
    async def test_admin_notification_is_role_addressed(self, mock_db, application_factory):
        application = application_factory(ApplicationStatus.PENDING_COORDINATE_APPROVAL)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.create = AsyncMock()
            await notify_admins(
                mock_db, application, NotificationType.COORDINATES_SUBMITTED, "t", "m"
            )

        kwargs = mock_repo.create.call_args.kwargs
        assert kwargs["recipient_role"] == ROLE_ADMIN
        assert "user_id" not in kwargs
        assert kwargs["link"] == f"/admin/applications/{application.id}"


class TestDeliverEmails:
    @pytest.mark.asyncio
    async def test_sends_applicant_notifications_only(self, application_factory):
        application = application_factory(ApplicationStatus.COORDINATE_APPROVED)
        notifications = [
            _notification(user_id=application.user_id),
            _notification(recipient_role=ROLE_ADMIN),
        ]

        with patch(
            f"{SERVICE}.send_notification_email", new_callable=AsyncMock
        ) as mock_send:
            mock_send.return_value = True
            sent = await deliver_emails(application, notifications)

        assert sent == 1
        mock_send.assert_awaited_once()
        assert mock_send.call_args.kwargs["to_email"] == "applicant@test.com"

    @pytest.mark.asyncio
    async def test_failure_is_not_raised(self, application_factory):
        """An email failure never fails the committed operation."""
        application = application_factory(ApplicationStatus.COORDINATE_APPROVED)

        with patch(
            f"{SERVICE}.send_notification_email", new_callable=AsyncMock
        ) as mock_send:
            mock_send.side_effect = RuntimeError("smtp down")
            sent = await deliver_emails(application, [_notification(user_id=uuid4())])

        assert sent == 0

    @pytest.mark.asyncio
    async def test_no_email_on_file(self, application_factory):
        application = application_factory(
            ApplicationStatus.COORDINATE_APPROVED, applicant_email=None
        )

        with patch(
            f"{SERVICE}.send_notification_email", new_callable=AsyncMock
        ) as mock_send:
            assert await deliver_emails(application, [_notification(user_id=uuid4())]) == 0

        mock_send.assert_not_awaited()


class TestMarkRead:
    @pytest.mark.asyncio
    async def test_admin_reads_role_notification(self, mock_db, admin):
        notification = _notification(recipient_role=ROLE_ADMIN)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=notification)
            mock_repo.mark_read = AsyncMock()

            await mark_notification_read(mock_db, notification.id, admin)

            mock_repo.mark_read.assert_awaited_once_with(mock_db, notification)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_addressed_to_actor(self, mock_db, applicant):
        notification = _notification(user_id=uuid4())

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=notification)

            with pytest.raises(AuthorizationError):
                await mark_notification_read(mock_db, notification.id, applicant)

    @pytest.mark.asyncio
    async def test_missing(self, mock_db, applicant):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(NotFoundError):
                await mark_notification_read(mock_db, uuid4(), applicant)
