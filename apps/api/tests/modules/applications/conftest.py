"""
Fixtures for application lifecycle tests.
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from app.core.auth import ROLE_ADMIN, ROLE_STUDENT, Principal
from app.modules.applications.models import Application, ApplicationStatus
from app.modules.scholarships.models import AmountType, Scholarship, ScholarshipStatus


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def student():
    return Principal(
        id=UUID("00000000-0000-0000-0000-00000000000a"),
        email="amara.kamara@university.edu",
        role=ROLE_STUDENT,
        name="Amara Kamara",
    )


@pytest.fixture
def other_student():
    return Principal(
        id=uuid4(),
        email="someone.else@university.edu",
        role=ROLE_STUDENT,
        name="Someone Else",
    )


@pytest.fixture
def admin():
    return Principal(
        id=UUID("00000000-0000-0000-0000-000000000001"),
        email="reviewer@scholarhub.dev",
        role=ROLE_ADMIN,
        name="Committee Reviewer",
    )


@pytest.fixture
def applicant_user(student):
    """The user row behind the student principal."""
    return SimpleNamespace(id=student.id, name=student.name, email=student.email)


def _make_scholarship(**overrides) -> Scholarship:
    values = {
        "id": uuid4(),
        "title": "Merit Scholarship for Engineering Students",
        "amount_value": 50000,
        "amount_currency": "INR",
        "amount_type": AmountType.ANNUAL,
        "application_deadline": datetime.now(UTC) + timedelta(days=30),
        "status": ScholarshipStatus.ACTIVE,
        "max_applications": 10,
        "application_count": 0,
        "approved_count": 0,
        "rejected_count": 0,
        "waitlisted_count": 0,
        "reviewed_count": 0,
    }
    values.update(overrides)
    return Scholarship(**values)


def _complete_sections() -> dict[str, dict]:
    """Section documents with every required field filled in."""
    return {
        "personal_info": {
            "full_name": "Amara Kamara",
            "email": "amara.kamara@university.edu",
            "phone": "+23276123456",
            "date_of_birth": "2003-04-12",
            "gender": "female",
            "address": {"city": "Freetown", "country": "Sierra Leone"},
            "nationality": "Sierra Leonean",
        },
        "academic_info": {
            "current_education_level": "undergraduate",
            "institution_name": "Fourah Bay College",
            "course": "Civil Engineering",
            "year_of_study": 2,
            "gpa": 3.6,
        },
        "family_financial_info": {
            "total_family_income": 180000,
            "number_of_dependents": 3,
            "family_size": 5,
            "financial_need": "Tuition and housing for the remaining years.",
        },
        "essays": {
            "personal_statement": "I want to build resilient infrastructure.",
            "why_deserve_scholarship": "Top of my class while working part time.",
            "career_goals": "Structural engineer in public works.",
        },
        "documents": {
            "id_proof": {"filename": "id.pdf", "url": "https://files.scholarhub.dev/id.pdf"},
            "income_certificate": {
                "filename": "income.pdf",
                "url": "https://files.scholarhub.dev/income.pdf",
            },
            "photograph": {"filename": "me.jpg", "url": "https://files.scholarhub.dev/me.jpg"},
            "marksheets": [
                {"filename": "year1.pdf", "url": "https://files.scholarhub.dev/year1.pdf"}
            ],
        },
    }


def _make_application(
    *,
    applicant_id: UUID,
    scholarship_id: UUID | None = None,
    status: ApplicationStatus = ApplicationStatus.DRAFT,
    sections: dict[str, dict] | None = None,
    completion_percentage: int = 0,
    **overrides,
) -> Application:
    """A transient Application with a one-entry status history."""
    now = datetime.now(UTC)
    sections = sections if sections is not None else {}
    application = Application(
        id=uuid4(),
        scholarship_id=scholarship_id or uuid4(),
        applicant_id=applicant_id,
        status=status,
        personal_info=sections.get("personal_info", {}),
        academic_info=sections.get("academic_info", {}),
        family_financial_info=sections.get("family_financial_info", {}),
        essays=sections.get("essays", {}),
        documents=sections.get("documents", {}),
        completion_percentage=completion_percentage,
        last_modified=now - timedelta(days=1),
        status_history=[
            {
                "status": ApplicationStatus.DRAFT.value,
                "changed_by": str(applicant_id),
                "reason": "Application created",
                "changed_at": (now - timedelta(days=1)).isoformat(),
            }
        ],
        created_at=now - timedelta(days=1),
        updated_at=now - timedelta(days=1),
        **overrides,
    )
    return application


@pytest.fixture
def make_scholarship():
    """Factory for transient Scholarship rows."""
    return _make_scholarship


@pytest.fixture
def make_application():
    """Factory for transient Application rows."""
    return _make_application


@pytest.fixture
def complete_sections():
    """Factory for fully filled-in section documents."""
    return _complete_sections


@pytest.fixture
def scholarship():
    return _make_scholarship()


@pytest.fixture
def draft_application(student, scholarship):
    """A draft with every section complete (100%)."""
    return _make_application(
        applicant_id=student.id,
        scholarship_id=scholarship.id,
        sections=_complete_sections(),
        completion_percentage=100,
    )


@pytest.fixture
def submitted_application(student, scholarship):
    return _make_application(
        applicant_id=student.id,
        scholarship_id=scholarship.id,
        status=ApplicationStatus.SUBMITTED,
        sections=_complete_sections(),
        completion_percentage=100,
        submission_date=datetime.now(UTC) - timedelta(hours=2),
    )
