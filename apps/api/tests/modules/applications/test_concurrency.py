"""
Concurrency tests for the application lifecycle.

Runs many requests against the service at once over an in-memory store
that mimics the database guarantees the service relies on:
- unique (scholarship, applicant) index checked at flush
- conditional single-statement counter updates
- row locks taken by SELECT ... FOR UPDATE and held until commit/rollback
- rollback undoes every write of the session

Every coroutine yields at each I/O point, so the requests interleave.
"""

import asyncio
from datetime import UTC, datetime
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.auth import ROLE_STUDENT, Principal
from app.modules.applications import repository as real_repository
from app.modules.applications import service
from app.modules.applications.errors import (
    CapacityExceededError,
    DuplicateApplicationError,
    InvalidStateTransitionError,
)
from app.modules.applications.models import Application, ApplicationStatus
from app.modules.applications.schemas import ApplicationCreate, ApplicationUpdate, ReviewDecision
from app.modules.scholarships.models import Scholarship

LOCKED_FIELDS = (
    "status",
    "status_history",
    "completion_percentage",
    "submission_date",
    "last_modified",
    "reviewed_by",
    "review_date",
    "review_notes",
    "award_amount",
)

SCHOLARSHIP_FIELDS = (
    "id",
    "title",
    "status",
    "application_deadline",
    "max_applications",
    "application_count",
    "approved_count",
    "rejected_count",
    "waitlisted_count",
    "reviewed_count",
)


class FakeStore:
    """Committed state plus the uniqueness and locking rules of the database."""

    def __init__(self, scholarship: Scholarship):
        self.scholarship = scholarship
        self.applications: dict[tuple[UUID, UUID], Application] = {}
        self.by_id: dict[UUID, Application] = {}
        self.locks: dict[UUID, asyncio.Lock] = {}
        self.notifications: list[tuple[str, UUID, str]] = []

    def snapshot_scholarship(self) -> Scholarship:
        return Scholarship(**{f: getattr(self.scholarship, f) for f in SCHOLARSHIP_FIELDS})

    def add_application(self, application: Application) -> None:
        self.applications[(application.scholarship_id, application.applicant_id)] = application
        self.by_id[application.id] = application


class FakeSession:
    """One request's transaction."""

    def __init__(self, store: FakeStore):
        self.store = store
        self._pending: list[Application] = []
        self._undo: list = []
        self._held: list[asyncio.Lock] = []

    def add(self, application: Application) -> None:
        self._pending.append(application)

    async def flush(self) -> None:
        await asyncio.sleep(0)
        for application in self._pending:
            key = (application.scholarship_id, application.applicant_id)
            if key in self.store.applications:
                raise IntegrityError(
                    "INSERT INTO applications",
                    {},
                    Exception("uq_applications_scholarship_applicant"),
                )
            if application.id is None:
                application.id = uuid4()
            self.store.add_application(application)
            self._undo.append(lambda k=key, a=application: self._remove(k, a))
        self._pending.clear()

    def _remove(self, key, application) -> None:
        self.store.applications.pop(key, None)
        self.store.by_id.pop(application.id, None)

    async def refresh(self, scholarship: Scholarship) -> None:
        await asyncio.sleep(0)
        for field in SCHOLARSHIP_FIELDS:
            setattr(scholarship, field, getattr(self.store.scholarship, field))

    async def commit(self) -> None:
        await asyncio.sleep(0)
        self._undo.clear()
        self._release()

    async def rollback(self) -> None:
        for undo in reversed(self._undo):
            undo()
        self._undo.clear()
        self._pending.clear()
        self._release()

    def _release(self) -> None:
        for lock in self._held:
            lock.release()
        self._held.clear()

    def on_rollback(self, undo) -> None:
        self._undo.append(undo)

    async def lock(self, application_id: UUID) -> None:
        lock = self.store.locks.setdefault(application_id, asyncio.Lock())
        await lock.acquire()
        self._held.append(lock)


def _fake_repositories(store: FakeStore):
    """Repository doubles with the database's atomicity."""

    async def get_scholarship(db, id):
        await asyncio.sleep(0)
        return store.snapshot_scholarship()

    async def reserve_application_slot(db, id, now):
        await asyncio.sleep(0)
        row = store.scholarship
        if row.max_applications is not None and row.application_count >= row.max_applications:
            return None
        row.application_count += 1

        def undo():
            row.application_count -= 1

        db.on_rollback(undo)
        return row.application_count

    async def increment_review_counters(db, id, decision):
        await asyncio.sleep(0)
        row = store.scholarship
        column = f"{decision}_count"
        setattr(row, column, getattr(row, column) + 1)
        row.reviewed_count += 1

        def undo():
            setattr(row, column, getattr(row, column) - 1)
            row.reviewed_count -= 1

        db.on_rollback(undo)
        return getattr(row, column), row.reviewed_count

    async def get_by_scholarship_and_applicant(db, scholarship_id, applicant_id):
        await asyncio.sleep(0)
        return store.applications.get((scholarship_id, applicant_id))

    async def get_by_id_for_update(db, id):
        await db.lock(id)
        application = store.by_id.get(id)
        if application is not None:
            before = {f: getattr(application, f) for f in LOCKED_FIELDS}

            def undo():
                for field, value in before.items():
                    setattr(application, field, value)

            db.on_rollback(undo)
        return application

    async def enqueue_for_application(db, application, kind, **kwargs):
        store.notifications.append((kind.value, application.id, application.status.value))

    async def get_user(db, user_id):
        return SimpleNamespace(id=user_id, name="Applicant", email="applicant@university.edu")

    applications_repo = SimpleNamespace(
        create=real_repository.create,
        update_status=real_repository.update_status,
        update_sections=real_repository.update_sections,
        record_review=real_repository.record_review,
        InvalidStatusTransitionError=real_repository.InvalidStatusTransitionError,
        get_by_scholarship_and_applicant=get_by_scholarship_and_applicant,
        get_by_id_for_update=get_by_id_for_update,
    )
    scholarship_repo = SimpleNamespace(
        get_by_id=get_scholarship,
        reserve_application_slot=reserve_application_slot,
        increment_review_counters=increment_review_counters,
    )
    return {
        "repository": applications_repo,
        "scholarship_repository": scholarship_repo,
        "UserRepository": SimpleNamespace(get_by_id=get_user),
        "notifications": SimpleNamespace(enqueue_for_application=enqueue_for_application),
    }


@pytest.fixture
def store(make_scholarship):
    return FakeStore(make_scholarship(max_applications=None))


@pytest.fixture
def fake_service(store, monkeypatch):
    for name, double in _fake_repositories(store).items():
        monkeypatch.setattr(service, name, double)
    return service


def _student() -> Principal:
    return Principal(id=uuid4(), email="applicant@university.edu", role=ROLE_STUDENT)


async def _gather(coroutines):
    return await asyncio.gather(*coroutines, return_exceptions=True)


def _successes(results):
    return [r for r in results if not isinstance(r, BaseException)]


def _failures(results, error_type):
    return [r for r in results if isinstance(r, error_type)]


class TestConcurrentCreate:
    @pytest.mark.asyncio
    async def test_same_applicant_creates_exactly_one(self, store, fake_service):
        student = _student()
        data = ApplicationCreate(scholarship_id=store.scholarship.id)

        results = await _gather(
            fake_service.create_application(FakeSession(store), student, data) for _ in range(8)
        )

        assert len(_successes(results)) == 1
        assert len(_failures(results, DuplicateApplicationError)) == 7
        assert len(store.applications) == 1
        assert store.scholarship.application_count == 1

    @pytest.mark.asyncio
    async def test_capacity_is_never_exceeded(self, store, fake_service):
        store.scholarship.max_applications = 3
        data = ApplicationCreate(scholarship_id=store.scholarship.id)

        results = await _gather(
            fake_service.create_application(FakeSession(store), _student(), data)
            for _ in range(20)
        )

        assert len(_successes(results)) == 3
        assert len(_failures(results, CapacityExceededError)) == 17
        assert store.scholarship.application_count == 3
        assert len(store.applications) == 3


def _submitted(store: FakeStore) -> Application:
    now = datetime.now(UTC)
    application = Application(
        id=uuid4(),
        scholarship_id=store.scholarship.id,
        applicant_id=uuid4(),
        status=ApplicationStatus.SUBMITTED,
        completion_percentage=100,
        submission_date=now,
        last_modified=now,
        status_history=[
            {
                "status": "submitted",
                "changed_by": None,
                "reason": None,
                "changed_at": now.isoformat(),
            }
        ],
    )
    store.add_application(application)
    return application


class TestConcurrentReview:
    @pytest.mark.asyncio
    async def test_counters_match_decisions(self, store, fake_service, admin):
        decisions = ["approved"] * 4 + ["rejected"] * 5 + ["waitlisted"] * 3
        applications = [_submitted(store) for _ in decisions]

        results = await _gather(
            fake_service.admin_review_application(
                FakeSession(store), admin, application.id, ReviewDecision(status=decision)
            )
            for application, decision in zip(applications, decisions, strict=True)
        )

        assert len(_successes(results)) == 12
        assert store.scholarship.approved_count == 4
        assert store.scholarship.rejected_count == 5
        assert store.scholarship.waitlisted_count == 3
        assert store.scholarship.reviewed_count == 12
        assert len(store.notifications) == 12

    @pytest.mark.asyncio
    async def test_one_application_is_decided_once(self, store, fake_service, admin):
        application = _submitted(store)
        other_admin = Principal(id=uuid4(), email="second@scholarhub.dev", role=admin.role)

        results = await _gather(
            [
                fake_service.admin_review_application(
                    FakeSession(store), admin, application.id, ReviewDecision(status="approved")
                ),
                fake_service.admin_review_application(
                    FakeSession(store),
                    other_admin,
                    application.id,
                    ReviewDecision(status="rejected"),
                ),
            ]
        )

        assert len(_successes(results)) == 1
        assert len(_failures(results, InvalidStateTransitionError)) == 1
        assert store.scholarship.reviewed_count == 1
        assert store.scholarship.approved_count + store.scholarship.rejected_count == 1
        assert len(application.status_history) == 2
        assert len(store.notifications) == 1

    @pytest.mark.asyncio
    async def test_submit_and_edit_race_leaves_consistent_draft_or_submission(
        self, store, fake_service, make_application, complete_sections
    ):
        student = _student()
        application = make_application(
            applicant_id=student.id,
            scholarship_id=store.scholarship.id,
            sections=complete_sections(),
            completion_percentage=100,
        )
        store.add_application(application)
        edit = ApplicationUpdate.model_validate(
            {"essays": {"career_goals": "Changed after submit"}}
        )

        results = await _gather(
            [
                fake_service.submit_application(FakeSession(store), student, application.id),
                fake_service.update_application(FakeSession(store), student, application.id, edit),
            ]
        )

        assert application.status == ApplicationStatus.SUBMITTED
        assert len(application.status_history) == 2
        if isinstance(results[1], InvalidStateTransitionError):
            assert application.essays == complete_sections()["essays"]
        else:
            assert application.essays["career_goals"] == "Changed after submit"
