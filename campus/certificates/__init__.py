"""Certificates module.

Provides:
- Eligibility gate on full course completion and exam approval
- Issuance of verifiable certificates (URL + QR)
- Public validation and PDF rendering
"""

from .models import CERTIFICATES_TABLES_CQL, Certificate, CertificateKind
from .rendering import CertificateRenderer
from .service import CertificateError, CertificateService


__all__ = [
    "CERTIFICATES_TABLES_CQL",
    "Certificate",
    "CertificateError",
    "CertificateKind",
    "CertificateRenderer",
    "CertificateService",
]
