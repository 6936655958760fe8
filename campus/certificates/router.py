"""Certificate API endpoints.

Provides routes for:
- Certificate generation (PDF download)
- Public validation by certificate ID
- PDF re-download by certificate ID
- Eligibility check
"""

from fastapi import APIRouter, Response

from campus.auth.dependencies import CurrentUser

from .dependencies import CertificateServiceDep, handle_certificate_error
from .models import Certificate
from .rendering import certificate_filename
from .schemas import CertificateValidationResponse, EligibilityResponse
from .service import CertificateError


router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


def _pdf_response(certificate: Certificate, content: bytes) -> Response:
    filename = certificate_filename(certificate.course_name)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Certificate-ID": certificate.certificate_id,
        },
    )


@router.post(
    "/generate/{course_id}",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
    summary="Generate certificate",
)
async def generate_certificate(
    course_id: str,
    certificate_service: CertificateServiceDep,
    user: CurrentUser,
) -> Response:
    """Issue a certificate for a completed course and return its PDF.

    The record is persisted before rendering; a rendering failure returns
    500 and the record remains available through the PDF endpoint.
    """
    try:
        certificate = await certificate_service.issue(user.id, course_id)
        content = await certificate_service.render_pdf(certificate)
    except CertificateError as e:
        raise handle_certificate_error(e) from e
    return _pdf_response(certificate, content)


@router.get(
    "/validate/{certificate_id}",
    response_model=CertificateValidationResponse,
    summary="Validate certificate",
)
async def validate_certificate(
    certificate_id: str,
    certificate_service: CertificateServiceDep,
) -> CertificateValidationResponse:
    """Public validation. Unknown or orphaned certificates are ``valid=false``."""
    result = await certificate_service.validate(certificate_id)
    return CertificateValidationResponse.from_result(result)


@router.get(
    "/eligibility/{course_id}",
    response_model=EligibilityResponse,
    summary="Check certificate eligibility",
)
async def check_eligibility(
    course_id: str,
    certificate_service: CertificateServiceDep,
    user: CurrentUser,
) -> EligibilityResponse:
    """Report whether the current user could obtain a certificate now."""
    try:
        result = await certificate_service.check_eligibility(user.id, course_id)
    except CertificateError as e:
        raise handle_certificate_error(e) from e
    return EligibilityResponse.from_result(result)


@router.get(
    "/{certificate_id}/pdf",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
    summary="Download certificate PDF",
)
async def download_certificate(
    certificate_id: str,
    certificate_service: CertificateServiceDep,
) -> Response:
    """Re-render a stored certificate; eligibility is not re-checked."""
    try:
        certificate, content = await certificate_service.get_certificate_pdf(
            certificate_id
        )
    except CertificateError as e:
        raise handle_certificate_error(e) from e
    return _pdf_response(certificate, content)
