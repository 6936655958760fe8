"""Pydantic schemas for certificates."""

from datetime import datetime

from pydantic import BaseModel, Field

from .models import Certificate, CertificateKind
from .service import Eligibility, EligibilityState, ValidationResult


class CertificateResponse(BaseModel):
    """Snapshotted certificate data."""

    certificate_id: str
    user_id: str
    course_id: str
    full_name: str
    national_id: str
    course_name: str
    completion_date: datetime
    issuance_date: datetime
    verification_url: str
    qr_code_image: str = Field(description="PNG data URL of the QR code")
    kind: CertificateKind

    @classmethod
    def from_entity(cls, entity: Certificate) -> "CertificateResponse":
        """Create response from entity."""
        return cls(**entity.to_dict())


class CertificateValidationResponse(BaseModel):
    """Public validation result (always HTTP 200)."""

    valid: bool
    message: str
    certificate: CertificateResponse | None = None

    @classmethod
    def from_result(cls, result: ValidationResult) -> "CertificateValidationResponse":
        return cls(
            valid=result.valid,
            message=result.message,
            certificate=(
                CertificateResponse.from_entity(result.certificate)
                if result.certificate
                else None
            ),
        )


class EligibilityResponse(BaseModel):
    """Eligibility state without issuing."""

    course_id: str
    state: EligibilityState
    percentage: int
    completed_count: int
    total_count: int
    requires_exam: bool
    exam_passed: bool
    kind: CertificateKind | None = Field(
        None, description="Kind that would be issued, when eligible"
    )
    reason: str | None = None

    @classmethod
    def from_result(cls, result: Eligibility) -> "EligibilityResponse":
        summary = result.summary
        return cls(
            course_id=result.course_id,
            state=result.state,
            percentage=summary.percentage,
            completed_count=summary.completed_count,
            total_count=summary.total_count,
            requires_exam=result.requires_exam,
            exam_passed=result.exam_passed,
            kind=result.kind if result.state is EligibilityState.ELIGIBLE else None,
            reason=result.reason,
        )
