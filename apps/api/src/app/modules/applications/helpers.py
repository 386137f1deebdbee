"""
Application helper functions.

Conversions between the ORM row, the section models and request patches.
"""

from typing import Any

from pydantic import ValidationError

from app.modules.applications.errors import ValidationFailedError
from app.modules.applications.models import Application
from app.modules.applications.schemas import ApplicationListItem
from app.modules.applications.scoring import is_present
from app.modules.applications.sections import SECTION_REGISTRY, ApplicationSections
from app.modules.scholarships.schemas import ScholarshipSummary

# Fields that gate draft -> submitted besides the completion threshold,
# as (section column, field) pairs
SUBMISSION_REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("personal_info", "full_name"),
    ("personal_info", "email"),
    ("personal_info", "phone"),
    ("academic_info", "institution_name"),
)


def _format_validation_error(error: ValidationError, section: str | None = None) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    if section:
        location = f"{section}.{location}" if location else section
    return f"Invalid {location}: {first['msg']}"


def sections_from_model(application: Application) -> ApplicationSections:
    """
    Load the stored section documents into section models.

    Raises:
        ValidationFailedError: If a stored document no longer matches its schema
    """
    try:
        return ApplicationSections.model_validate(
            {name: getattr(application, name) or {} for name in SECTION_REGISTRY}
        )
    except ValidationError as e:
        raise ValidationFailedError(_format_validation_error(e)) from e


def merge_section_patches(
    current: ApplicationSections,
    patches: dict[str, dict[str, Any]],
) -> ApplicationSections:
    """
    Apply partial section updates on top of the current contents.

    Keys present in a patch replace the stored value (an explicit null
    clears it); keys absent from the patch are kept.

    Raises:
        ValidationFailedError: If the merged section fails validation
    """
    merged = current.to_columns()

    for name, patch in patches.items():
        if name not in SECTION_REGISTRY:
            raise ValidationFailedError(f"Unknown section: {name}")
        merged[name] = {**merged.get(name, {}), **patch}

    try:
        return ApplicationSections.model_validate(merged)
    except ValidationError as e:
        raise ValidationFailedError(_format_validation_error(e)) from e


def apply_personal_defaults(
    sections: ApplicationSections,
    *,
    name: str | None,
    email: str | None,
) -> ApplicationSections:
    """
    Substitute the account's name and email for empty personal-info fields.
    """
    personal = sections.personal_info
    updates: dict[str, Any] = {}

    if not is_present(personal.full_name) and name:
        updates["full_name"] = name
    if not is_present(personal.email) and email:
        updates["email"] = email

    if not updates:
        return sections

    return sections.model_copy(
        update={"personal_info": personal.model_copy(update=updates)},
    )


def missing_submission_fields(sections: ApplicationSections) -> list[str]:
    """Identity/academic fields required for submission that are not present."""
    return [
        f"{section}.{field}"
        for section, field in SUBMISSION_REQUIRED_FIELDS
        if not is_present(getattr(getattr(sections, section), field))
    ]


def application_to_list_item(application: Application) -> ApplicationListItem:
    """Convert an Application row to its list representation."""
    personal = application.personal_info or {}
    applicant = application.applicant
    scholarship = application.scholarship

    return ApplicationListItem(
        id=application.id,
        scholarship_id=application.scholarship_id,
        scholarship=ScholarshipSummary.model_validate(scholarship) if scholarship else None,
        applicant_id=application.applicant_id,
        applicant_name=personal.get("full_name") or (applicant.name if applicant else None),
        applicant_email=personal.get("email") or (applicant.email if applicant else None),
        status=application.status,
        completion_percentage=application.completion_percentage,
        submission_date=application.submission_date,
        last_modified=application.last_modified,
        review_date=application.review_date,
    )
