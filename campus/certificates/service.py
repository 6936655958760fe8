"""Certificate eligibility and issuance service layer.

Business logic for:
- Eligibility gate (entitlement, full course completion, exam approval)
- Issuance of immutable certificate records with verification URL and QR
- Public validation by certificate ID
- PDF rendering of persisted certificates
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

from campus.courses.models import Course
from campus.progress.models import CourseProgressSummary
from campus.users.models import User
from campus.utils.dates import utc_now

from .models import Certificate, CertificateKind
from .rendering import CertificateRenderer, qr_data_url


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from campus.courses.service import CourseService
    from campus.exams.service import ExamService
    from campus.progress.aggregator import CourseProgressAggregator
    from campus.users.service import UserService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CertificateError(Exception):
    """Base certificate error."""

    def __init__(
        self,
        message: str,
        code: str = "certificate_error",
        extra: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.extra = extra or {}
        super().__init__(message)


class UserNotFoundError(CertificateError):
    """User does not exist."""

    def __init__(self, message: str = "Usuario no encontrado"):
        super().__init__(message, "user_not_found")


class CourseNotFoundError(CertificateError):
    """Course does not exist."""

    def __init__(self, message: str = "Curso no encontrado"):
        super().__init__(message, "course_not_found")


class CourseAccessDeniedError(CertificateError):
    """User is not entitled to the course."""

    def __init__(self, message: str = "El usuario no tiene acceso a este curso"):
        super().__init__(message, "course_access_denied")


class IncompleteProfileError(CertificateError):
    """User lacks the name or national ID printed on the certificate."""

    def __init__(self, message: str = "El usuario no tiene nombre o DNI completos"):
        super().__init__(message, "incomplete_profile")


class CourseWithoutModulesError(CertificateError):
    """Course has no modules, so it can never be completed."""

    def __init__(self, message: str = "El curso no tiene modulos"):
        super().__init__(message, "course_without_modules")


class CourseNotCompletedError(CertificateError):
    """Course progress is below 100%."""

    def __init__(self, percentage: int):
        super().__init__(
            "El curso no esta completado",
            "course_not_completed",
            {"progress": percentage, "missing": 100 - percentage},
        )


class ExamNotPassedError(CertificateError):
    """Course has an active exam and the user has not passed it."""

    def __init__(
        self,
        message: str = "Debes aprobar el examen final para obtener el certificado",
    ):
        super().__init__(message, "exam_not_passed", {"requires_exam": True})


class CertificateNotFoundError(CertificateError):
    """No certificate with this ID."""

    def __init__(self, message: str = "Certificado no encontrado"):
        super().__init__(message, "certificate_not_found")


class CertificateRenderError(CertificateError):
    """The certificate document could not be produced."""

    def __init__(self, message: str = "Error al generar el documento del certificado"):
        super().__init__(message, "certificate_render_failed")


# ==============================================================================
# Results
# ==============================================================================


class EligibilityState(str, Enum):
    """Certificate state of a user for a course (before issuance)."""

    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    ELIGIBLE = "ELIGIBLE"


@dataclass
class Eligibility:
    """Outcome of the eligibility gate.

    ``reason`` is the code of the first failed gate, None when eligible.
    """

    course_id: str
    summary: CourseProgressSummary
    requires_exam: bool = False
    exam_passed: bool = False
    reason: str | None = None

    @property
    def state(self) -> EligibilityState:
        return (
            EligibilityState.ELIGIBLE
            if self.reason is None
            else EligibilityState.NOT_ELIGIBLE
        )

    @property
    def kind(self) -> CertificateKind:
        """Kind that issuance would produce."""
        return (
            CertificateKind.APPROVAL
            if self.requires_exam
            else CertificateKind.PARTICIPATION
        )

    def raise_for_reason(self) -> None:
        """Raise the error matching the failed gate, if any."""
        if self.reason == "course_without_modules":
            raise CourseWithoutModulesError
        if self.reason == "course_not_completed":
            raise CourseNotCompletedError(self.summary.percentage)
        if self.reason == "exam_not_passed":
            raise ExamNotPassedError


@dataclass
class ValidationResult:
    """Public validation outcome; invalid is data, not an error."""

    valid: bool
    message: str
    certificate: Certificate | None = None


# ==============================================================================
# Service
# ==============================================================================


class CertificateService:
    """Service for certificate eligibility, issuance and validation."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        user_service: "UserService",
        course_service: "CourseService",
        exam_service: "ExamService",
        aggregator: "CourseProgressAggregator",
        renderer: CertificateRenderer,
        public_base_url: str,
        validation_path: str = "/validar-certificado",
        qr_scale: int = 5,
    ):
        """Initialize certificate service.

        Args:
            session: Cassandra session
            keyspace: Keyspace name
            user_service: User directory
            course_service: Course directory
            exam_service: Exam results directory
            aggregator: Course progress aggregator (eligibility is computed fresh)
            renderer: PDF renderer
            public_base_url: Front-end base URL for the running environment
            validation_path: Front-end route that validates certificates
            qr_scale: QR module size in pixels
        """
        self.session = session
        self.keyspace = keyspace
        self.user_service = user_service
        self.course_service = course_service
        self.exam_service = exam_service
        self.aggregator = aggregator
        self.renderer = renderer
        self.public_base_url = public_base_url.rstrip("/")
        self.validation_path = "/" + validation_path.strip("/")
        self.qr_scale = qr_scale
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert_certificate = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.certificates
            (certificate_id, user_id, course_id, full_name, national_id,
             course_name, completion_date, issuance_date, verification_url,
             qr_code_image, kind)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_certificate = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.certificates WHERE certificate_id = ?
        """)

    def verification_url(self, certificate_id: str) -> str:
        """Public URL that validates ``certificate_id``."""
        return f"{self.public_base_url}{self.validation_path}/{certificate_id}"

    # ==========================================================================
    # Eligibility
    # ==========================================================================

    async def _load(
        self, user_id: str, course_id: str, require_profile: bool = False
    ) -> tuple[User, Course]:
        user = await self.user_service.get_user(user_id)
        if user is None:
            raise UserNotFoundError
        if require_profile and not (user.full_name and user.national_id):
            raise IncompleteProfileError

        course = await self.course_service.get_course(course_id)
        if course is None:
            raise CourseNotFoundError

        if not user.is_entitled_to(course_id):
            raise CourseAccessDeniedError

        return user, course

    async def _evaluate(self, user_id: str, course: Course) -> Eligibility:
        if not course.module_ids:
            return Eligibility(
                course_id=course.id,
                summary=CourseProgressSummary(course_id=course.id),
                reason="course_without_modules",
            )

        breakdown = await self.aggregator.compute(user_id, course)
        summary = breakdown.summary
        result = Eligibility(course_id=course.id, summary=summary)

        if summary.percentage != 100:
            result.reason = "course_not_completed"
            return result

        result.requires_exam = await self.exam_service.has_active_exam(course.id)
        if result.requires_exam:
            result.exam_passed = await self.exam_service.find_passed_attempt(
                user_id, course.id
            )
            if not result.exam_passed:
                result.reason = "exam_not_passed"

        return result

    async def check_eligibility(self, user_id: str, course_id: str) -> Eligibility:
        """Evaluate the gate without issuing anything.

        Raises:
            UserNotFoundError, CourseNotFoundError, CourseAccessDeniedError
        """
        _, course = await self._load(user_id, course_id)
        return await self._evaluate(user_id, course)

    # ==========================================================================
    # Issuance
    # ==========================================================================

    async def issue(self, user_id: str, course_id: str) -> Certificate:
        """Mint a new certificate for a fully completed course.

        Every call creates a new independent record; earlier certificates
        for the same user and course are left untouched.

        Raises:
            UserNotFoundError: Unknown user
            IncompleteProfileError: Missing full name or national ID
            CourseNotFoundError: Unknown course
            CourseAccessDeniedError: User not entitled to the course
            CourseWithoutModulesError: Course has no modules
            CourseNotCompletedError: Course below 100%
            ExamNotPassedError: Active exam without a passed attempt
        """
        user, course = await self._load(user_id, course_id, require_profile=True)
        eligibility = await self._evaluate(user_id, course)
        if eligibility.reason is not None:
            logger.info(
                "certificate_not_eligible",
                user_id=user_id,
                course_id=course_id,
                reason=eligibility.reason,
                percentage=eligibility.summary.percentage,
            )
        eligibility.raise_for_reason()

        now = utc_now()
        certificate_id = str(uuid4())
        verification_url = self.verification_url(certificate_id)
        certificate = Certificate(
            certificate_id=certificate_id,
            user_id=user_id,
            course_id=course_id,
            full_name=user.full_name,
            national_id=user.national_id,
            course_name=course.title or "Curso",
            completion_date=eligibility.summary.last_activity_at or now,
            issuance_date=now,
            verification_url=verification_url,
            qr_code_image=qr_data_url(verification_url, scale=self.qr_scale),
            kind=eligibility.kind,
        )

        await self.session.aexecute(
            self._insert_certificate,
            [
                certificate.certificate_id,
                certificate.user_id,
                certificate.course_id,
                certificate.full_name,
                certificate.national_id,
                certificate.course_name,
                certificate.completion_date,
                certificate.issuance_date,
                certificate.verification_url,
                certificate.qr_code_image,
                certificate.kind.value,
            ],
        )

        logger.info(
            "certificate_issued",
            certificate_id=certificate_id,
            user_id=user_id,
            course_id=course_id,
            kind=certificate.kind.value,
            verification_url=verification_url,
        )
        return certificate

    # ==========================================================================
    # Lookup / Validation
    # ==========================================================================

    async def get_certificate(self, certificate_id: str) -> Certificate | None:
        """Get certificate by ID."""
        result = await self.session.aexecute(self._get_certificate, [certificate_id])
        row = result.one()
        return Certificate.from_row(row) if row else None

    async def validate(self, certificate_id: str) -> ValidationResult:
        """Check a certificate and the live records it references.

        Snapshotted fields are returned unchanged; both the course and the
        holder must still exist for the certificate to be valid.
        """
        certificate = await self.get_certificate(certificate_id)
        if certificate is None:
            return ValidationResult(valid=False, message="Certificado no encontrado")

        if await self.course_service.get_course(certificate.course_id) is None:
            return ValidationResult(
                valid=False,
                message="El curso asociado a este certificado ya no existe",
            )

        if await self.user_service.get_user(certificate.user_id) is None:
            return ValidationResult(
                valid=False,
                message="El usuario asociado a este certificado ya no existe",
            )

        return ValidationResult(
            valid=True, message="Certificado valido", certificate=certificate
        )

    # ==========================================================================
    # Rendering
    # ==========================================================================

    async def render_pdf(self, certificate: Certificate) -> bytes:
        """Render the PDF of a persisted certificate.

        Raises:
            CertificateRenderError: If the document cannot be produced
        """
        try:
            return await self.renderer.render_async(certificate)
        except Exception as e:
            logger.exception(
                "certificate_render_failed",
                certificate_id=certificate.certificate_id,
            )
            raise CertificateRenderError from e

    async def get_certificate_pdf(self, certificate_id: str) -> tuple[Certificate, bytes]:
        """Re-render a stored certificate without re-checking eligibility.

        Raises:
            CertificateNotFoundError: Unknown ID
            CertificateRenderError: If the document cannot be produced
        """
        certificate = await self.get_certificate(certificate_id)
        if certificate is None:
            raise CertificateNotFoundError
        return certificate, await self.render_pdf(certificate)
