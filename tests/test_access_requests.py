"""
Tests for access request intake and review.

These tests verify:
1. SUBMIT: anonymous, owners and the admin mailbox are told
2. APPROVE: provisions an approved account with a mailed credential
3. REJECT: terminal, with a reason
4. pending -> approved | rejected happens at most once
"""

import pytest

from fluxo.core.security import verify_password
from fluxo.models import AccessRequestStatus, PlatformRole
from fluxo.services import (
    AccessRequestService,
    ConflictError,
    ForbiddenError,
    IdentityService,
    InvalidStateTransitionError,
    NotificationCenter,
)


@pytest.fixture
def requests_service(session, mail_sender) -> AccessRequestService:
    return AccessRequestService(session, mail_sender=mail_sender)


async def submit(service: AccessRequestService, email: str = "Frank@Startup.com"):
    outcome = await service.submit_request(
        name=" Frank ", email=email, company="Startup", message="Let me in"
    )
    return outcome.request


class TestSubmit:

    async def test_submit_is_pending(self, session, requests_service, mail_sender, owner):
        request = await submit(requests_service)

        assert request.status == AccessRequestStatus.PENDING
        assert request.email == "frank@startup.com"
        assert request.name == "Frank"

        [mail] = mail_sender.to("admin@fluxo.io")
        assert mail["template"] == "access_request_received"
        titles = [n.title for n in (await NotificationCenter(session).list(owner.id)).items]
        assert titles == ["New access request"]

    async def test_list_by_status(self, requests_service, owner):
        first = await submit(requests_service, "one@startup.com")
        second = await submit(requests_service, "two@startup.com")
        await requests_service.reject(owner, first.id)

        pending = await requests_service.list_requests(owner, AccessRequestStatus.PENDING)
        everything = await requests_service.list_requests(owner)

        assert [r.id for r in pending] == [second.id]
        assert len(everything) == 2

    async def test_only_owner_reviews(self, requests_service, alice):
        with pytest.raises(ForbiddenError):
            await requests_service.list_requests(alice)


class TestApprove:

    async def test_approve_provisions_account(self, session, requests_service, mail_sender, owner):
        request = await submit(requests_service)

        outcome = await requests_service.approve(owner, request.id)

        assert outcome.request.status == AccessRequestStatus.APPROVED
        assert outcome.request.processed_by == owner.id
        user = outcome.user
        assert user.email == "frank@startup.com"
        assert user.is_approved is True
        assert user.platform_role == PlatformRole.MEMBER
        assert user.private_workspace_id is not None

        [mail] = mail_sender.to("frank@startup.com")
        assert mail["template"] == "access_approved"
        password = mail["variables"]["password"]
        assert len(password) == 12
        assert verify_password(password, user.password_hash)

        # The mailed credential signs in
        signed_in = await IdentityService(session, mail_sender=mail_sender).authenticate(
            "frank@startup.com", password
        )
        assert signed_in.id == user.id

    async def test_approve_twice(self, requests_service, owner):
        request = await submit(requests_service)
        await requests_service.approve(owner, request.id)

        with pytest.raises(InvalidStateTransitionError):
            await requests_service.approve(owner, request.id)

    async def test_existing_account_blocks_approval(self, requests_service, owner, alice):
        request = await submit(requests_service, "alice@acme.com")

        with pytest.raises(ConflictError):
            await requests_service.approve(owner, request.id)
        assert request.status == AccessRequestStatus.PENDING

    async def test_mail_failure_keeps_approval(self, session, failing_mail_sender, owner):
        service = AccessRequestService(session, mail_sender=failing_mail_sender)
        request = await submit(service)

        outcome = await service.approve(owner, request.id)

        assert outcome.user.is_approved is True
        assert any("frank@startup.com" in w for w in outcome.warnings)


class TestReject:

    async def test_reject_with_reason(self, requests_service, owner):
        request = await submit(requests_service)

        outcome = await requests_service.reject(owner, request.id, reason="Not a fit")

        assert outcome.request.status == AccessRequestStatus.REJECTED
        assert outcome.request.rejection_reason == "Not a fit"
        assert outcome.user is None

    async def test_rejected_is_terminal(self, requests_service, owner):
        request = await submit(requests_service)
        await requests_service.reject(owner, request.id)

        with pytest.raises(InvalidStateTransitionError):
            await requests_service.approve(owner, request.id)
