"""
Tests for the applications service.

These tests verify the business logic of the application lifecycle:
- Eligibility & capacity gate (ordering, lost races, duplicates)
- Draft editing and the edit lock after submission
- Submission guard (required fields and completion threshold)
- Admin review: state machine, review fields, counters, notifications
- Completion recompute
- Ownership checks and pagination
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from app.modules.applications import service
from app.modules.applications.errors import (
    ApplicantNotFoundError,
    ApplicationAccessDeniedError,
    ApplicationNotFoundError,
    CapacityExceededError,
    DeadlinePassedError,
    DuplicateApplicationError,
    InvalidStateTransitionError,
    ScholarshipNotFoundError,
    ScholarshipUnavailableError,
    SubmissionRequirementsError,
    ValidationFailedError,
)
from app.modules.applications.models import ApplicationStatus
from app.modules.applications.repository import (
    InvalidStatusTransitionError,
    record_review,
    update_sections,
    update_status,
)
from app.modules.applications.schemas import (
    ApplicationCreate,
    ApplicationUpdate,
    ReviewDecision,
)
from app.modules.notifications.models import NotificationKind
from app.modules.scholarships.models import ScholarshipStatus

# ============================================
# Fixtures
# ============================================


@pytest.fixture
def mock_repo():
    """Applications repository with real in-memory mutators and mocked queries."""
    with patch("app.modules.applications.service.repository") as repo:
        repo.InvalidStatusTransitionError = InvalidStatusTransitionError
        repo.update_status = update_status
        repo.update_sections = update_sections
        repo.record_review = record_review
        repo.get_by_id = AsyncMock(return_value=None)
        repo.get_by_id_for_update = AsyncMock(return_value=None)
        repo.get_by_scholarship_and_applicant = AsyncMock(return_value=None)
        repo.create = AsyncMock()
        repo.list_for_applicant = AsyncMock(return_value=([], 0))
        repo.get_applications_for_admin = AsyncMock(return_value=([], 0))
        yield repo


@pytest.fixture
def mock_scholarship_repo():
    with patch("app.modules.applications.service.scholarship_repository") as repo:
        repo.get_by_id = AsyncMock(return_value=None)
        repo.reserve_application_slot = AsyncMock(return_value=1)
        repo.increment_review_counters = AsyncMock(return_value=(1, 1))
        yield repo


@pytest.fixture
def mock_users(applicant_user):
    with patch("app.modules.applications.service.UserRepository") as users:
        users.get_by_id = AsyncMock(return_value=applicant_user)
        yield users


@pytest.fixture
def mock_notifications():
    with patch("app.modules.applications.service.notifications") as notifications:
        notifications.enqueue_for_application = AsyncMock(return_value=uuid4())
        yield notifications


def _assert_rolled_back(mock_db):
    mock_db.rollback.assert_awaited_once()
    mock_db.commit.assert_not_awaited()


# ============================================
# Gate
# ============================================


class TestCheckGate:
    def test_active_open_scholarship_passes(self, scholarship):
        service.check_gate(scholarship, datetime.now(UTC))

    def test_missing_scholarship_unavailable(self):
        with pytest.raises(ScholarshipUnavailableError):
            service.check_gate(None, datetime.now(UTC))

    @pytest.mark.parametrize(
        "status",
        [
            ScholarshipStatus.DRAFT,
            ScholarshipStatus.CLOSED,
            ScholarshipStatus.EXPIRED,
            ScholarshipStatus.CANCELLED,
        ],
    )
    def test_inactive_scholarship_unavailable(self, make_scholarship, status):
        with pytest.raises(ScholarshipUnavailableError):
            service.check_gate(make_scholarship(status=status), datetime.now(UTC))

    def test_deadline_passed(self, make_scholarship):
        scholarship = make_scholarship(
            application_deadline=datetime.now(UTC) - timedelta(minutes=1)
        )

        with pytest.raises(DeadlinePassedError):
            service.check_gate(scholarship, datetime.now(UTC))

    def test_deadline_instant_still_open(self, make_scholarship):
        now = datetime.now(UTC)
        service.check_gate(make_scholarship(application_deadline=now), now)

    def test_capacity_reached(self, make_scholarship):
        scholarship = make_scholarship(max_applications=3, application_count=3)

        with pytest.raises(CapacityExceededError) as exc_info:
            service.check_gate(scholarship, datetime.now(UTC))

        assert exc_info.value.status_code == 409

    def test_unlimited_capacity(self, make_scholarship):
        scholarship = make_scholarship(max_applications=None, application_count=10_000)
        service.check_gate(scholarship, datetime.now(UTC))

    def test_inactive_reported_before_deadline(self, make_scholarship):
        scholarship = make_scholarship(
            status=ScholarshipStatus.CLOSED,
            application_deadline=datetime.now(UTC) - timedelta(days=1),
            max_applications=1,
            application_count=1,
        )

        with pytest.raises(ScholarshipUnavailableError):
            service.check_gate(scholarship, datetime.now(UTC))

    def test_deadline_reported_before_capacity(self, make_scholarship):
        scholarship = make_scholarship(
            application_deadline=datetime.now(UTC) - timedelta(days=1),
            max_applications=1,
            application_count=1,
        )

        with pytest.raises(DeadlinePassedError):
            service.check_gate(scholarship, datetime.now(UTC))


# ============================================
# Create
# ============================================


class TestCreateApplication:
    @pytest.mark.asyncio
    async def test_creates_draft_with_defaults(
        self,
        mock_db,
        student,
        scholarship,
        make_application,
        mock_repo,
        mock_scholarship_repo,
        mock_users,
    ):
        mock_scholarship_repo.get_by_id.return_value = scholarship
        created = make_application(applicant_id=student.id, scholarship_id=scholarship.id)
        mock_repo.create.return_value = created
        data = ApplicationCreate.model_validate(
            {
                "scholarship_id": str(scholarship.id),
                "academic_info": {"institution_name": "Fourah Bay College"},
            }
        )

        result = await service.create_application(mock_db, student, data)

        assert result is created
        mock_scholarship_repo.reserve_application_slot.assert_awaited_once()
        kwargs = mock_repo.create.call_args.kwargs
        assert kwargs["applicant_id"] == student.id
        assert kwargs["scholarship_id"] == scholarship.id
        assert kwargs["sections"]["personal_info"] == {
            "full_name": "Amara Kamara",
            "email": "amara.kamara@university.edu",
        }
        # 2/7 personal (7.14) + 1/5 academic (5) = 12.14
        assert kwargs["completion_percentage"] == 12
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gate_failure_touches_nothing(
        self, mock_db, student, make_scholarship, mock_repo, mock_scholarship_repo, mock_users
    ):
        mock_scholarship_repo.get_by_id.return_value = make_scholarship(
            application_deadline=datetime.now(UTC) - timedelta(hours=1)
        )

        with pytest.raises(DeadlinePassedError):
            await service.create_application(
                mock_db, student, ApplicationCreate(scholarship_id=uuid4())
            )

        mock_scholarship_repo.reserve_application_slot.assert_not_awaited()
        mock_repo.create.assert_not_awaited()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_existing_application_is_duplicate(
        self,
        mock_db,
        student,
        scholarship,
        draft_application,
        mock_repo,
        mock_scholarship_repo,
        mock_users,
    ):
        mock_scholarship_repo.get_by_id.return_value = scholarship
        mock_repo.get_by_scholarship_and_applicant.return_value = draft_application

        with pytest.raises(DuplicateApplicationError) as exc_info:
            await service.create_application(
                mock_db, student, ApplicationCreate(scholarship_id=scholarship.id)
            )

        assert exc_info.value.error_code == "DUPLICATE_APPLICATION"
        mock_scholarship_repo.reserve_application_slot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unique_violation_is_duplicate_and_rolls_back(
        self, mock_db, student, scholarship, mock_repo, mock_scholarship_repo, mock_users
    ):
        mock_scholarship_repo.get_by_id.return_value = scholarship
        mock_repo.create.side_effect = IntegrityError(
            "INSERT INTO applications", {}, Exception("uq_applications_scholarship_applicant")
        )

        with pytest.raises(DuplicateApplicationError):
            await service.create_application(
                mock_db, student, ApplicationCreate(scholarship_id=scholarship.id)
            )

        _assert_rolled_back(mock_db)

    @pytest.mark.asyncio
    async def test_lost_capacity_race(
        self, mock_db, student, scholarship, mock_repo, mock_scholarship_repo, mock_users
    ):
        scholarship.max_applications = 5
        scholarship.application_count = 4
        mock_scholarship_repo.get_by_id.return_value = scholarship
        mock_scholarship_repo.reserve_application_slot.return_value = None

        async def refresh(obj):
            obj.application_count = 5

        mock_db.refresh.side_effect = refresh

        with pytest.raises(CapacityExceededError):
            await service.create_application(
                mock_db, student, ApplicationCreate(scholarship_id=scholarship.id)
            )

        mock_repo.create.assert_not_awaited()
        _assert_rolled_back(mock_db)

    @pytest.mark.asyncio
    async def test_scholarship_closed_during_request(
        self, mock_db, student, scholarship, mock_repo, mock_scholarship_repo, mock_users
    ):
        mock_scholarship_repo.get_by_id.return_value = scholarship
        mock_scholarship_repo.reserve_application_slot.return_value = None

        async def refresh(obj):
            obj.status = ScholarshipStatus.CLOSED

        mock_db.refresh.side_effect = refresh

        with pytest.raises(ScholarshipUnavailableError):
            await service.create_application(
                mock_db, student, ApplicationCreate(scholarship_id=scholarship.id)
            )

        _assert_rolled_back(mock_db)

    @pytest.mark.asyncio
    async def test_unknown_applicant(
        self, mock_db, student, scholarship, mock_repo, mock_scholarship_repo, mock_users
    ):
        mock_scholarship_repo.get_by_id.return_value = scholarship
        mock_users.get_by_id.return_value = None

        with pytest.raises(ApplicantNotFoundError):
            await service.create_application(
                mock_db, student, ApplicationCreate(scholarship_id=scholarship.id)
            )

        mock_scholarship_repo.reserve_application_slot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_cannot_apply(
        self, mock_db, admin, scholarship, mock_repo, mock_scholarship_repo, mock_users
    ):
        mock_scholarship_repo.get_by_id.return_value = scholarship

        with pytest.raises(ApplicationAccessDeniedError) as exc_info:
            await service.create_application(
                mock_db, admin, ApplicationCreate(scholarship_id=scholarship.id)
            )

        assert exc_info.value.status_code == 403
        mock_scholarship_repo.reserve_application_slot.assert_not_awaited()
        mock_repo.create.assert_not_awaited()
        mock_db.commit.assert_not_awaited()


# ============================================
# Submit
# ============================================


class TestSubmitApplication:
    @pytest.mark.asyncio
    async def test_submits_complete_draft(
        self, mock_db, student, draft_application, mock_repo, mock_notifications
    ):
        mock_repo.get_by_id_for_update.return_value = draft_application

        result = await service.submit_application(mock_db, student, draft_application.id)

        assert result.status == ApplicationStatus.SUBMITTED
        assert result.submission_date is not None
        assert len(result.status_history) == 2
        assert result.status_history[-1]["status"] == "submitted"
        mock_notifications.enqueue_for_application.assert_awaited_once_with(
            mock_db, draft_application, NotificationKind.APPLICATION_SUBMITTED
        )
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_phone_blocks_submission(
        self,
        mock_db,
        student,
        make_application,
        complete_sections,
        mock_repo,
        mock_notifications,
    ):
        sections = complete_sections()
        del sections["personal_info"]["phone"]
        application = make_application(applicant_id=student.id, sections=sections)
        mock_repo.get_by_id_for_update.return_value = application

        with pytest.raises(SubmissionRequirementsError) as exc_info:
            await service.submit_application(mock_db, student, application.id)

        error = exc_info.value
        assert isinstance(error, InvalidStateTransitionError)
        assert error.status_code == 400
        assert error.error_code == "SUBMISSION_REQUIREMENTS_NOT_MET"
        assert error.missing == ["personal_info.phone"]
        assert error.completion == 96
        assert application.status == ApplicationStatus.DRAFT
        mock_notifications.enqueue_for_application.assert_not_awaited()
        _assert_rolled_back(mock_db)

    @pytest.mark.asyncio
    async def test_threshold_is_inclusive(
        self,
        mock_db,
        student,
        make_application,
        complete_sections,
        mock_repo,
        mock_notifications,
    ):
        """personal (25) + academic (25) + documents (10) = 60."""
        data = complete_sections()
        sections = {k: data[k] for k in ("personal_info", "academic_info", "documents")}
        application = make_application(applicant_id=student.id, sections=sections)
        mock_repo.get_by_id_for_update.return_value = application

        result = await service.submit_application(mock_db, student, application.id)

        assert result.completion_percentage == 60
        assert result.status == ApplicationStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_below_threshold_blocks_submission(
        self,
        mock_db,
        student,
        make_application,
        complete_sections,
        mock_repo,
        mock_notifications,
    ):
        data = complete_sections()
        sections = {k: data[k] for k in ("personal_info", "academic_info", "documents")}
        application = make_application(applicant_id=student.id, sections=sections)
        mock_repo.get_by_id_for_update.return_value = application

        with patch.object(service.settings, "submission_threshold", 61):
            with pytest.raises(SubmissionRequirementsError) as exc_info:
                await service.submit_application(mock_db, student, application.id)

        assert exc_info.value.missing == []
        assert exc_info.value.completion == 60
        assert exc_info.value.threshold == 61

    @pytest.mark.asyncio
    async def test_stale_stored_score_is_recomputed(
        self, mock_db, student, make_application, mock_repo, mock_notifications
    ):
        application = make_application(
            applicant_id=student.id,
            sections={
                "personal_info": {
                    "full_name": "Amara Kamara",
                    "email": "amara.kamara@university.edu",
                    "phone": "+23276123456",
                },
                "academic_info": {"institution_name": "Fourah Bay College"},
            },
            completion_percentage=100,
        )
        mock_repo.get_by_id_for_update.return_value = application

        with pytest.raises(SubmissionRequirementsError) as exc_info:
            await service.submit_application(mock_db, student, application.id)

        # 3/7 personal (10.71) + 1/5 academic (5) = 15.71
        assert exc_info.value.completion == 16

    @pytest.mark.asyncio
    async def test_non_owner_denied(
        self, mock_db, other_student, draft_application, mock_repo, mock_notifications
    ):
        mock_repo.get_by_id_for_update.return_value = draft_application

        with pytest.raises(ApplicationAccessDeniedError) as exc_info:
            await service.submit_application(mock_db, other_student, draft_application.id)

        assert exc_info.value.status_code == 403
        assert draft_application.status == ApplicationStatus.DRAFT

    @pytest.mark.asyncio
    async def test_already_submitted(
        self, mock_db, student, submitted_application, mock_repo, mock_notifications
    ):
        mock_repo.get_by_id_for_update.return_value = submitted_application

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await service.submit_application(mock_db, student, submitted_application.id)

        assert exc_info.value.error_code == "INVALID_STATE_TRANSITION"
        assert exc_info.value.status_code == 409
        assert len(submitted_application.status_history) == 1

    @pytest.mark.asyncio
    async def test_not_found(self, mock_db, student, mock_repo, mock_notifications):
        with pytest.raises(ApplicationNotFoundError) as exc_info:
            await service.submit_application(mock_db, student, uuid4())

        assert exc_info.value.status_code == 404
        _assert_rolled_back(mock_db)


# ============================================
# Update
# ============================================


class TestUpdateApplication:
    @pytest.mark.asyncio
    async def test_merges_patch_and_recomputes(
        self, mock_db, student, make_application, mock_repo, mock_notifications
    ):
        application = make_application(
            applicant_id=student.id,
            sections={"essays": {"personal_statement": "I want to teach."}},
        )
        mock_repo.get_by_id_for_update.return_value = application
        data = ApplicationUpdate.model_validate(
            {"essays": {"career_goals": "Secondary mathematics educator."}}
        )

        result = await service.update_application(mock_db, student, application.id, data)

        assert result.essays == {
            "personal_statement": "I want to teach.",
            "career_goals": "Secondary mathematics educator.",
        }
        # Personal defaults come from the principal: 2/7 personal + 2/3 essays
        assert result.personal_info["full_name"] == "Amara Kamara"
        assert result.completion_percentage == 20
        assert result.status == ApplicationStatus.DRAFT
        mock_notifications.enqueue_for_application.assert_not_awaited()
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_with_status_submits(
        self, mock_db, student, draft_application, mock_repo, mock_notifications
    ):
        mock_repo.get_by_id_for_update.return_value = draft_application
        data = ApplicationUpdate.model_validate(
            {"essays": {"challenges": "Long commute."}, "status": "submitted"}
        )

        result = await service.update_application(mock_db, student, draft_application.id, data)

        assert result.status == ApplicationStatus.SUBMITTED
        assert result.essays["challenges"] == "Long commute."
        mock_notifications.enqueue_for_application.assert_awaited_once_with(
            mock_db, draft_application, NotificationKind.APPLICATION_SUBMITTED
        )

    @pytest.mark.asyncio
    async def test_update_with_status_applies_submission_guard(
        self, mock_db, student, draft_application, mock_repo, mock_notifications
    ):
        mock_repo.get_by_id_for_update.return_value = draft_application
        data = ApplicationUpdate.model_validate(
            {"academic_info": {"institution_name": None}, "status": "submitted"}
        )

        with pytest.raises(SubmissionRequirementsError) as exc_info:
            await service.update_application(mock_db, student, draft_application.id, data)

        assert exc_info.value.missing == ["academic_info.institution_name"]
        _assert_rolled_back(mock_db)

    @pytest.mark.parametrize(
        "status",
        [
            ApplicationStatus.SUBMITTED,
            ApplicationStatus.UNDER_REVIEW,
            ApplicationStatus.APPROVED,
            ApplicationStatus.WAITLISTED,
        ],
    )
    @pytest.mark.asyncio
    async def test_sections_frozen_after_submission(
        self, mock_db, student, make_application, complete_sections, mock_repo, status
    ):
        sections = complete_sections()
        application = make_application(applicant_id=student.id, status=status, sections=sections)
        mock_repo.get_by_id_for_update.return_value = application
        data = ApplicationUpdate.model_validate({"essays": {"career_goals": "Changed"}})

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await service.update_application(mock_db, student, application.id, data)

        assert exc_info.value.error_code == "INVALID_STATE_TRANSITION"
        assert application.essays == sections["essays"]
        _assert_rolled_back(mock_db)

    @pytest.mark.asyncio
    async def test_invalid_section_data(self, mock_db, student, draft_application, mock_repo):
        mock_repo.get_by_id_for_update.return_value = draft_application
        draft_application.documents = {"id_proof": {"filename": "id.pdf"}}
        data = ApplicationUpdate.model_validate({"essays": {"career_goals": "Changed"}})

        with pytest.raises(ValidationFailedError):
            await service.update_application(mock_db, student, draft_application.id, data)

    @pytest.mark.asyncio
    async def test_non_owner_denied(self, mock_db, other_student, draft_application, mock_repo):
        mock_repo.get_by_id_for_update.return_value = draft_application

        with pytest.raises(ApplicationAccessDeniedError):
            await service.update_application(
                mock_db, other_student, draft_application.id, ApplicationUpdate()
            )


# ============================================
# Recalculate
# ============================================


class TestRecalculateCompletion:
    @pytest.mark.asyncio
    async def test_corrects_stale_value(self, mock_db, student, draft_application, mock_repo):
        draft_application.completion_percentage = 10
        mock_repo.get_by_id_for_update.return_value = draft_application

        result = await service.recalculate_completion(mock_db, student, draft_application.id)

        assert result.completion_percentage == 100
        assert draft_application.completion_percentage == 100
        assert result.section_scores["personal_info"] == 25.0
        assert all(fields == [] for fields in result.missing_fields.values())
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reports_missing_fields(self, mock_db, admin, make_application, mock_repo):
        application = make_application(
            applicant_id=uuid4(),
            status=ApplicationStatus.APPROVED,
            sections={"essays": {"personal_statement": "Hello."}},
        )
        mock_repo.get_by_id_for_update.return_value = application

        result = await service.recalculate_completion(mock_db, admin, application.id)

        assert result.completion_percentage == 7
        assert result.section_scores["essays"] == 6.67
        assert result.missing_fields["essays"] == ["why_deserve_scholarship", "career_goals"]

    @pytest.mark.asyncio
    async def test_other_student_denied(
        self, mock_db, other_student, draft_application, mock_repo
    ):
        mock_repo.get_by_id_for_update.return_value = draft_application

        with pytest.raises(ApplicationAccessDeniedError):
            await service.recalculate_completion(mock_db, other_student, draft_application.id)


# ============================================
# Read
# ============================================


class TestGetApplication:
    @pytest.mark.asyncio
    async def test_owner_and_admin_can_read(
        self, mock_db, student, admin, draft_application, mock_repo
    ):
        mock_repo.get_by_id.return_value = draft_application

        assert await service.get_application(mock_db, student, draft_application.id) is (
            draft_application
        )
        assert await service.get_application(mock_db, admin, draft_application.id) is (
            draft_application
        )

    @pytest.mark.asyncio
    async def test_other_student_denied(
        self, mock_db, other_student, draft_application, mock_repo
    ):
        mock_repo.get_by_id.return_value = draft_application

        with pytest.raises(ApplicationAccessDeniedError):
            await service.get_application(mock_db, other_student, draft_application.id)

    @pytest.mark.asyncio
    async def test_not_found(self, mock_db, student, mock_repo):
        with pytest.raises(ApplicationNotFoundError):
            await service.get_application(mock_db, student, uuid4())


class TestListing:
    @pytest.mark.asyncio
    async def test_my_applications_pagination(self, mock_db, student, draft_application, mock_repo):
        mock_repo.list_for_applicant.return_value = ([draft_application], 11)

        result = await service.list_my_applications(mock_db, student, page=3, limit=5)

        assert result["applications"] == [draft_application]
        assert result["pagination"] == {"page": 3, "limit": 5, "total": 11, "pages": 3}
        mock_repo.list_for_applicant.assert_awaited_once_with(
            mock_db, student.id, status=None, skip=10, limit=5
        )

    @pytest.mark.asyncio
    async def test_admin_list_clamps_limit_and_passes_filters(self, mock_db, mock_repo):
        scholarship_id = uuid4()

        result = await service.admin_list_applications(
            mock_db,
            status=ApplicationStatus.SUBMITTED,
            scholarship_id=scholarship_id,
            search="amara",
            sort_by="completion_percentage",
            sort_order="asc",
            page=1,
            limit=500,
        )

        assert result["pagination"] == {"page": 1, "limit": 100, "total": 0, "pages": 0}
        kwargs = mock_repo.get_applications_for_admin.call_args.kwargs
        assert kwargs["status"] == ApplicationStatus.SUBMITTED
        assert kwargs["scholarship_id"] == scholarship_id
        assert kwargs["search"] == "amara"
        assert kwargs["sort_by"] == "completion_percentage"
        assert kwargs["sort_order"] == "asc"
        assert kwargs["limit"] == 100

    @pytest.mark.asyncio
    async def test_admin_get_not_found(self, mock_db, mock_repo):
        with pytest.raises(ApplicationNotFoundError):
            await service.admin_get_application(mock_db, uuid4())


# ============================================
# Admin review
# ============================================


class TestAdminStartReview:
    @pytest.mark.asyncio
    async def test_submitted_to_under_review(
        self, mock_db, admin, submitted_application, mock_repo, mock_notifications
    ):
        mock_repo.get_by_id_for_update.return_value = submitted_application

        result = await service.admin_start_review(
            mock_db, admin, submitted_application.id, note="Assigned to committee A"
        )

        assert result.status == ApplicationStatus.UNDER_REVIEW
        assert result.status_history[-1]["reason"] == "Assigned to committee A"
        assert result.status_history[-1]["changed_by"] == str(admin.id)
        mock_notifications.enqueue_for_application.assert_awaited_once_with(
            mock_db, submitted_application, NotificationKind.STATUS_CHANGED
        )
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_draft_cannot_enter_review(
        self, mock_db, admin, draft_application, mock_repo, mock_notifications
    ):
        mock_repo.get_by_id_for_update.return_value = draft_application

        with pytest.raises(InvalidStateTransitionError):
            await service.admin_start_review(mock_db, admin, draft_application.id)

        assert draft_application.status == ApplicationStatus.DRAFT
        mock_notifications.enqueue_for_application.assert_not_awaited()
        _assert_rolled_back(mock_db)


class TestAdminReviewApplication:
    @pytest.mark.asyncio
    async def test_approve_records_everything(
        self,
        mock_db,
        admin,
        submitted_application,
        mock_repo,
        mock_scholarship_repo,
        mock_notifications,
    ):
        mock_repo.get_by_id_for_update.return_value = submitted_application
        decision = ReviewDecision(
            status="approved", review_notes="Excellent candidate", award_amount="25000"
        )

        result = await service.admin_review_application(
            mock_db, admin, submitted_application.id, decision
        )

        assert result.status == ApplicationStatus.APPROVED
        assert result.reviewed_by == admin.id
        assert result.review_date is not None
        assert result.review_notes == "Excellent candidate"
        assert result.award_amount == Decimal("25000")
        assert len(result.status_history) == 2
        assert result.status_history[-1]["status"] == "approved"
        mock_scholarship_repo.increment_review_counters.assert_awaited_once_with(
            mock_db, submitted_application.scholarship_id, "approved"
        )
        mock_notifications.enqueue_for_application.assert_awaited_once_with(
            mock_db,
            submitted_application,
            NotificationKind.STATUS_CHANGED,
            review_notes="Excellent candidate",
        )
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reject_from_under_review_drops_award(
        self,
        mock_db,
        admin,
        make_application,
        mock_repo,
        mock_scholarship_repo,
        mock_notifications,
    ):
        application = make_application(
            applicant_id=uuid4(), status=ApplicationStatus.UNDER_REVIEW
        )
        mock_repo.get_by_id_for_update.return_value = application

        result = await service.admin_review_application(
            mock_db,
            admin,
            application.id,
            ReviewDecision(status="rejected", award_amount="1000"),
        )

        assert result.status == ApplicationStatus.REJECTED
        assert result.award_amount is None
        mock_scholarship_repo.increment_review_counters.assert_awaited_once_with(
            mock_db, application.scholarship_id, "rejected"
        )

    @pytest.mark.parametrize(
        "status",
        [
            ApplicationStatus.DRAFT,
            ApplicationStatus.APPROVED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.WAITLISTED,
        ],
    )
    @pytest.mark.asyncio
    async def test_not_reviewable(
        self,
        mock_db,
        admin,
        make_application,
        mock_repo,
        mock_scholarship_repo,
        mock_notifications,
        status,
    ):
        application = make_application(applicant_id=uuid4(), status=status)
        mock_repo.get_by_id_for_update.return_value = application

        with pytest.raises(InvalidStateTransitionError):
            await service.admin_review_application(
                mock_db, admin, application.id, ReviewDecision(status="waitlisted")
            )

        assert application.status == status
        assert application.reviewed_by is None
        mock_scholarship_repo.increment_review_counters.assert_not_awaited()
        mock_notifications.enqueue_for_application.assert_not_awaited()
        _assert_rolled_back(mock_db)

    @pytest.mark.asyncio
    async def test_missing_scholarship_rolls_back(
        self,
        mock_db,
        admin,
        submitted_application,
        mock_repo,
        mock_scholarship_repo,
        mock_notifications,
    ):
        mock_repo.get_by_id_for_update.return_value = submitted_application
        mock_scholarship_repo.increment_review_counters.return_value = None

        with pytest.raises(ScholarshipNotFoundError):
            await service.admin_review_application(
                mock_db, admin, submitted_application.id, ReviewDecision(status="approved")
            )

        mock_notifications.enqueue_for_application.assert_not_awaited()
        _assert_rolled_back(mock_db)

    @pytest.mark.asyncio
    async def test_not_found(self, mock_db, admin, mock_repo, mock_scholarship_repo):
        with pytest.raises(ApplicationNotFoundError):
            await service.admin_review_application(
                mock_db, admin, uuid4(), ReviewDecision(status="approved")
            )

        mock_scholarship_repo.increment_review_counters.assert_not_awaited()
