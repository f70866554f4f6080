"""
Unit tests for ReviewService: approval, rejection, standing and access.
"""

from uuid import uuid4

import pytest
from support import (
    PASSWORD,
    individual_documents,
    individual_fields,
    individual_identity,
    organization_documents,
    organization_fields,
    register_active_organization,
    register_active_individual,
    stored,
)

from onboarding.domain.audit import AuditEvent, RequestContext
from onboarding.domain.exceptions import ConflictError, NotFoundError, ValidationError
from onboarding.domain.principals import AccountStatus, PrincipalKind

IND = PrincipalKind.INDIVIDUAL
ORG = PrincipalKind.ORGANIZATION


@pytest.fixture
def applicant(services):
    return services.registration.register(IND, individual_fields(), individual_documents(), password=PASSWORD)


@pytest.fixture
def org_applicant(services):
    return services.registration.register(ORG, organization_fields(), organization_documents(), password=PASSWORD)


class TestPending:
    def test_lists_only_pending_of_the_kind(self, services, applicant, org_applicant) -> None:
        services.registration.quick_register(IND, individual_identity(2), PASSWORD)

        pending = services.review.pending(IND)

        assert [p.id for p in pending] == [applicant.id]
        assert [p.id for p in services.review.pending(ORG)] == [org_applicant.id]


class TestApprove:
    def test_pending_becomes_active(self, services, applicant, dispatcher, audit_log) -> None:
        principal = services.review.approve(IND, applicant.id)
        services.queue.drain()

        assert principal.status is AccountStatus.ACTIVE
        assert stored(services, IND, applicant.email).status is AccountStatus.ACTIVE
        assert "approved" in dispatcher.send_email.call_args[0][2]
        assert audit_log.events()[-1] == AuditEvent.APPLICATION_APPROVED.value

    def test_not_pending_rejected(self, services, applicant) -> None:
        services.review.approve(IND, applicant.id)

        with pytest.raises(ValidationError, match="not pending"):
            services.review.approve(IND, applicant.id)

    def test_unknown_id_not_found(self, services) -> None:
        with pytest.raises(NotFoundError):
            services.review.approve(IND, uuid4())

    def test_kind_mismatch_not_found(self, services, applicant) -> None:
        with pytest.raises(NotFoundError):
            services.review.approve(ORG, applicant.id)

    def test_records_admin_actor(self, services, applicant, audit_log) -> None:
        services.review.approve(IND, applicant.id, RequestContext(actor_id="CON-099"))

        assert audit_log.entries[-1].request_meta == {"actor_id": "CON-099"}


class TestReject:
    def test_individual_becomes_rejected(self, services, applicant) -> None:
        principal = services.review.reject(IND, applicant.id)

        assert principal.status is AccountStatus.REJECTED

    def test_organization_becomes_inactive(self, services, org_applicant) -> None:
        principal = services.review.reject(ORG, org_applicant.id, "Expired tax certificate")

        assert principal.status is AccountStatus.INACTIVE

    def test_organization_requires_reason(self, services, org_applicant) -> None:
        with pytest.raises(ValidationError) as exc_info:
            services.review.reject(ORG, org_applicant.id, "   ")

        assert exc_info.value.details["field"] == "reason"
        assert stored(services, ORG, org_applicant.business_email).status is AccountStatus.PENDING

    def test_reason_is_sent_to_applicant(self, services, applicant, dispatcher) -> None:
        services.review.reject(IND, applicant.id, "Incomplete CV")
        services.queue.drain()

        assert "Reason: Incomplete CV" in dispatcher.send_email.call_args[0][2]

    def test_only_pending_can_be_rejected(self, services) -> None:
        active = register_active_individual(services)

        with pytest.raises(ValidationError):
            services.review.reject(IND, active.id)


class TestStanding:
    def test_suspend_from_any_status(self, services, applicant) -> None:
        principal = services.review.suspend(IND, applicant.email, "Policy breach")

        assert principal.status is AccountStatus.SUSPENDED

    def test_activate_from_any_status(self, services, applicant) -> None:
        services.review.suspend(IND, applicant.email)

        principal = services.review.activate(IND, applicant.email)

        assert principal.status is AccountStatus.ACTIVE

    def test_repeated_suspend_is_allowed(self, services, applicant, audit_log) -> None:
        services.review.suspend(IND, applicant.email)
        services.review.suspend(IND, applicant.email)

        assert audit_log.events().count(AuditEvent.ACCOUNT_SUSPENDED.value) == 2

    def test_unknown_email_not_found(self, services) -> None:
        with pytest.raises(NotFoundError):
            services.review.suspend(IND, "nobody@example.com")


class TestUpdateAccess:
    def test_replaces_roles_without_duplicates(self, services, applicant) -> None:
        principal = services.review.update_access(IND, applicant.email, roles=["admin", "consultant", "admin"])

        assert principal.roles == ["admin", "consultant"]

    def test_replaces_permissions(self, services, applicant) -> None:
        principal = services.review.update_access(
            IND, applicant.email, permissions={"/reports": {"read"}}
        )

        assert stored(services, IND, applicant.email).permissions == {"/reports": {"read"}}
        assert principal.roles == ["consultant"]

    def test_empty_roles_rejected(self, services, applicant) -> None:
        with pytest.raises(ValidationError):
            services.review.update_access(IND, applicant.email, roles=[])


class TestAccounts:
    def test_pages_newest_first_with_total(self, services, clock) -> None:
        created = []
        for n in range(1, 4):
            created.append(services.registration.quick_register(IND, individual_identity(n), PASSWORD))
            clock.advance(60)

        first, total = services.review.accounts(IND, page=1, limit=2)
        second, _ = services.review.accounts(IND, page=2, limit=2)

        assert total == 3
        assert [p.id for p in first] == [created[2].id, created[1].id]
        assert [p.id for p in second] == [created[0].id]

    def test_status_filter(self, services, applicant) -> None:
        services.registration.quick_register(IND, individual_identity(2), PASSWORD)

        principals, total = services.review.accounts(IND, AccountStatus.PENDING)

        assert total == 1
        assert [p.id for p in principals] == [applicant.id]

    def test_kinds_are_listed_separately(self, services, applicant, org_applicant) -> None:
        principals, total = services.review.accounts(ORG)

        assert total == 1
        assert principals[0].id == org_applicant.id

    @pytest.mark.parametrize(("page", "limit"), [(0, 10), (1, 0)])
    def test_page_and_limit_must_be_positive(self, services, page, limit) -> None:
        with pytest.raises(ValidationError):
            services.review.accounts(IND, page=page, limit=limit)


class TestLookup:
    def test_by_id(self, services, applicant) -> None:
        assert services.review.account(IND, applicant.id).email == applicant.email

    def test_unknown_id_not_found(self, services) -> None:
        with pytest.raises(NotFoundError):
            services.review.account(IND, uuid4())

    def test_by_national_id(self, services, applicant) -> None:
        principal = services.review.account_by_national_id(f" {applicant.national_id} ")

        assert principal.id == applicant.id

    def test_unknown_national_id_not_found(self, services) -> None:
        with pytest.raises(NotFoundError):
            services.review.account_by_national_id("99999999")


class TestUpdateProfile:
    def test_updates_named_fields_and_audits(self, services, applicant, audit_log) -> None:
        principal = services.review.update_profile(
            IND, applicant.id, {"first_name": " Janet ", "email": "Janet@Example.com"}
        )

        assert principal.first_name == "Janet"
        saved = stored(services, IND, "janet@example.com")
        assert saved.first_name == "Janet"
        assert saved.display_id == applicant.display_id
        assert audit_log.events()[-1] == AuditEvent.PROFILE_UPDATED.value

    def test_own_values_do_not_conflict(self, services, applicant) -> None:
        principal = services.review.update_profile(
            IND, applicant.id, {"email": applicant.email, "national_id": applicant.national_id}
        )

        assert principal.email == applicant.email

    def test_value_of_another_account_is_conflict(self, services, applicant) -> None:
        other = register_active_individual(services, n=2)

        with pytest.raises(ConflictError) as exc_info:
            services.review.update_profile(IND, applicant.id, {"phone_number": other.phone_number})

        assert exc_info.value.field == "phoneNumber"
        assert stored(services, IND, applicant.email).phone_number == applicant.phone_number

    def test_organization_conflict_uses_wire_name(self, services, org_applicant) -> None:
        other = register_active_organization(services, n=2)

        with pytest.raises(ConflictError) as exc_info:
            services.review.update_profile(ORG, org_applicant.id, {"business_email": other.business_email})

        assert exc_info.value.field == "businessEmail"

    def test_display_id_is_immutable(self, services, applicant) -> None:
        with pytest.raises(ValidationError) as exc_info:
            services.review.update_profile(IND, applicant.id, {"display_id": "CON-999"})

        assert exc_info.value.details["field"] == "displayId"
        assert stored(services, IND, applicant.email).display_id == applicant.display_id

    @pytest.mark.parametrize("attr", ["roles", "status", "password_hash"])
    def test_non_profile_fields_rejected(self, services, applicant, attr) -> None:
        with pytest.raises(ValidationError):
            services.review.update_profile(IND, applicant.id, {attr: "x"})

    def test_blank_value_rejected(self, services, applicant) -> None:
        with pytest.raises(ValidationError) as exc_info:
            services.review.update_profile(IND, applicant.id, {"last_name": "   "})

        assert exc_info.value.details["field"] == "lastName"

    def test_profile_is_merged(self, services, applicant) -> None:
        services.review.update_profile(IND, applicant.id, {"profile": {"county": "Nairobi"}})
        services.review.update_profile(IND, applicant.id, {"profile": {"skills": ["audit"]}})

        profile = stored(services, IND, applicant.email).profile
        assert profile["county"] == "Nairobi"
        assert profile["skills"] == ["audit"]

    def test_unknown_id_not_found(self, services) -> None:
        with pytest.raises(NotFoundError):
            services.review.update_profile(IND, uuid4(), {"first_name": "Janet"})
