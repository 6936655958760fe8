"""FastAPI dependencies for certificates.

Provides dependency injection for:
- Certificate service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import CertificateError, CertificateService


async def get_certificate_service(request: Request) -> CertificateService:
    """Get certificate service from app state.

    Args:
        request: FastAPI request

    Returns:
        CertificateService instance
    """
    app_state = request.app.state
    if (
        not hasattr(app_state, "certificate_service")
        or not app_state.certificate_service
    ):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Servicio de certificados no disponible",
        )
    return app_state.certificate_service


# Type alias for dependency injection
CertificateServiceDep = Annotated[CertificateService, Depends(get_certificate_service)]


def handle_certificate_error(error: CertificateError) -> HTTPException:
    """Convert certificate errors to HTTP exceptions.

    Args:
        error: Certificate error

    Returns:
        HTTPException with appropriate status code; the detail carries the
        error code and any extra data (progress, missing, requires_exam)
    """
    status_map = {
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "certificate_not_found": status.HTTP_404_NOT_FOUND,
        "course_access_denied": status.HTTP_403_FORBIDDEN,
        "incomplete_profile": status.HTTP_400_BAD_REQUEST,
        "course_without_modules": status.HTTP_412_PRECONDITION_FAILED,
        "course_not_completed": status.HTTP_412_PRECONDITION_FAILED,
        "exam_not_passed": status.HTTP_412_PRECONDITION_FAILED,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail={"message": error.message, "code": error.code, **error.extra},
    )
