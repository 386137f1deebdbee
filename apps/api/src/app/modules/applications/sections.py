"""
Application Sections

Each of the five content sections is an explicit pydantic model that
declares its scoring weight and the fields that count towards completion.
SECTION_REGISTRY ties the ORM column name to the model and is the single
source the scorer iterates over.

All section fields are optional: applicants fill them in over several
sessions while the application is a draft.
"""

import enum
from datetime import date, datetime
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class EducationLevel(str, enum.Enum):
    HIGH_SCHOOL = "high_school"
    UNDERGRADUATE = "undergraduate"
    POSTGRADUATE = "postgraduate"
    DOCTORATE = "doctorate"
    DIPLOMA = "diploma"
    OTHER = "other"


class IncomeCategory(str, enum.Enum):
    BELOW_POVERTY_LINE = "below_poverty_line"
    LOW = "low"
    MIDDLE = "middle"
    HIGH = "high"


class SectionModel(BaseModel):
    """Base for the five sections."""

    model_config = ConfigDict(extra="forbid")

    WEIGHT: ClassVar[int]
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]]


# ============================================
# Nested records
# ============================================


class Address(BaseModel):
    model_config = ConfigDict(extra="forbid")

    street: str | None = Field(None, max_length=300)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)


class PreviousEducation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = Field(..., max_length=100)
    institution: str = Field(..., max_length=200)
    year_of_completion: int | None = Field(None, ge=1900, le=2100)
    percentage: float | None = Field(None, ge=0, le=100)


class DocumentRef(BaseModel):
    """Attachment metadata. File bytes live in the document store."""

    model_config = ConfigDict(extra="forbid")

    filename: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=1000)
    uploaded_at: datetime | None = None


# ============================================
# Sections
# ============================================


class PersonalInfo(SectionModel):
    """Personal details. full_name and email default to the account's values."""

    WEIGHT: ClassVar[int] = 25
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "full_name",
        "email",
        "phone",
        "date_of_birth",
        "gender",
        "address",
        "nationality",
    )

    full_name: str | None = Field(None, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    date_of_birth: date | None = None
    gender: Gender | None = None
    address: Address | None = None
    nationality: str | None = Field(None, max_length=100)


class AcademicInfo(SectionModel):
    WEIGHT: ClassVar[int] = 25
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "current_education_level",
        "institution_name",
        "course",
        "year_of_study",
        "gpa",
    )

    current_education_level: EducationLevel | None = None
    institution_name: str | None = Field(None, max_length=200)
    course: str | None = Field(None, max_length=200)
    year_of_study: int | None = Field(None, ge=1, le=10)
    gpa: float | None = Field(None, ge=0, le=100)
    expected_graduation_date: date | None = None
    previous_education: list[PreviousEducation] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)


class FamilyFinancialInfo(SectionModel):
    WEIGHT: ClassVar[int] = 20
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "total_family_income",
        "number_of_dependents",
        "family_size",
        "financial_need",
    )

    father_name: str | None = Field(None, max_length=200)
    father_occupation: str | None = Field(None, max_length=200)
    father_income: float | None = Field(None, ge=0)
    mother_name: str | None = Field(None, max_length=200)
    mother_occupation: str | None = Field(None, max_length=200)
    mother_income: float | None = Field(None, ge=0)
    total_family_income: float | None = Field(None, ge=0)
    number_of_dependents: int | None = Field(None, ge=0)
    family_size: int | None = Field(None, ge=1)
    financial_need: str | None = Field(None, max_length=2000)
    income_category: IncomeCategory | None = None


class Essays(SectionModel):
    WEIGHT: ClassVar[int] = 20
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "personal_statement",
        "why_deserve_scholarship",
        "career_goals",
    )

    personal_statement: str | None = Field(None, max_length=5000)
    why_deserve_scholarship: str | None = Field(None, max_length=5000)
    career_goals: str | None = Field(None, max_length=5000)
    challenges: str | None = Field(None, max_length=5000)
    additional_info: str | None = Field(None, max_length=5000)


class Documents(SectionModel):
    WEIGHT: ClassVar[int] = 10
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "id_proof",
        "income_certificate",
        "photograph",
        "marksheets",
    )

    marksheets: list[DocumentRef] = Field(default_factory=list)
    income_certificate: DocumentRef | None = None
    caste_certificate: DocumentRef | None = None
    id_proof: DocumentRef | None = None
    photograph: DocumentRef | None = None
    recommendation_letters: list[DocumentRef] = Field(default_factory=list)
    additional_documents: list[DocumentRef] = Field(default_factory=list)


# ORM column name -> section model, in display order
SECTION_REGISTRY: dict[str, type[SectionModel]] = {
    "personal_info": PersonalInfo,
    "academic_info": AcademicInfo,
    "family_financial_info": FamilyFinancialInfo,
    "essays": Essays,
    "documents": Documents,
}


class ApplicationSections(BaseModel):
    """The complete content of an application."""

    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    academic_info: AcademicInfo = Field(default_factory=AcademicInfo)
    family_financial_info: FamilyFinancialInfo = Field(default_factory=FamilyFinancialInfo)
    essays: Essays = Field(default_factory=Essays)
    documents: Documents = Field(default_factory=Documents)

    def iter_sections(self):
        """Yield (column_name, section) pairs in registry order."""
        for name in SECTION_REGISTRY:
            yield name, getattr(self, name)

    def to_columns(self) -> dict[str, dict]:
        """JSON-ready dicts keyed by ORM column name."""
        return {
            name: section.model_dump(mode="json", exclude_none=True)
            for name, section in self.iter_sections()
        }
