"""Database models for certificates.

Cassandra table definitions for:
- Certificates: immutable records keyed by their own ID

The certificate ID is the credential: there is no lookup by user or course.
Holder and course fields are snapshots taken at issuance.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from campus.utils.dates import ensure_utc_aware


class CertificateKind(str, Enum):
    """Certificate kinds.

    APPROVAL: course had an active graded exam the user passed
    PARTICIPATION: no exam gate was involved
    """

    APPROVAL = "approval"
    PARTICIPATION = "participation"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CERTIFICATES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificates (
    certificate_id TEXT PRIMARY KEY,
    user_id TEXT,
    course_id TEXT,
    full_name TEXT,
    national_id TEXT,
    course_name TEXT,
    completion_date TIMESTAMP,
    issuance_date TIMESTAMP,
    verification_url TEXT,
    qr_code_image TEXT,
    kind TEXT
)
"""

CERTIFICATES_TABLES_CQL = [
    CERTIFICATES_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Certificate:
    """Issued certificate.

    Attributes:
        certificate_id: Globally unique ID, also the public credential
        user_id: Holder user ID
        course_id: Certified course ID
        full_name: Holder name at issuance
        national_id: Holder national ID at issuance
        course_name: Course title at issuance
        completion_date: When the course was completed
        issuance_date: When the certificate was minted
        verification_url: Public URL that validates this certificate
        qr_code_image: PNG data URL encoding ``verification_url``
        kind: APPROVAL or PARTICIPATION
    """

    def __init__(
        self,
        certificate_id: str,
        user_id: str,
        course_id: str,
        full_name: str,
        national_id: str,
        course_name: str,
        completion_date: datetime,
        issuance_date: datetime,
        verification_url: str,
        qr_code_image: str,
        kind: CertificateKind | str,
    ):
        self.certificate_id = certificate_id
        self.user_id = user_id
        self.course_id = course_id
        self.full_name = full_name
        self.national_id = national_id
        self.course_name = course_name
        self.completion_date = ensure_utc_aware(completion_date)
        self.issuance_date = ensure_utc_aware(issuance_date)
        self.verification_url = verification_url
        self.qr_code_image = qr_code_image
        self.kind = CertificateKind(kind)

    @classmethod
    def from_row(cls, row: Any) -> "Certificate":
        """Create Certificate instance from Cassandra row."""
        return cls(
            certificate_id=row.certificate_id,
            user_id=row.user_id,
            course_id=row.course_id,
            full_name=row.full_name or "",
            national_id=row.national_id or "",
            course_name=row.course_name or "",
            completion_date=row.completion_date,
            issuance_date=row.issuance_date,
            verification_url=row.verification_url or "",
            qr_code_image=row.qr_code_image or "",
            kind=row.kind or CertificateKind.PARTICIPATION,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "certificate_id": self.certificate_id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "full_name": self.full_name,
            "national_id": self.national_id,
            "course_name": self.course_name,
            "completion_date": self.completion_date,
            "issuance_date": self.issuance_date,
            "verification_url": self.verification_url,
            "qr_code_image": self.qr_code_image,
            "kind": self.kind.value,
        }

    def __repr__(self) -> str:
        return (
            f"<Certificate {self.certificate_id} user={self.user_id} "
            f"course={self.course_id} kind={self.kind.value}>"
        )
