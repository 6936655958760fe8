"""Tests for certificate API endpoints."""

import pytest
from fastapi.testclient import TestClient

from campus.auth.security import create_access_token
from campus.main import create_app


@pytest.fixture
def client(progress_service, certificate_service) -> TestClient:
    app = create_app()
    app.state.progress_service = progress_service
    app.state.certificate_service = certificate_service
    return TestClient(app)


def _headers(user_id: str = "user-1") -> dict[str, str]:
    token = create_access_token({"sub": user_id})
    return {"Authorization": f"Bearer {token}"}


def _complete_course(client: TestClient) -> None:
    for module_id, count in (("mod-a", 4), ("mod-b", 4)):
        for position in range(count):
            response = client.post(
                "/v1/progress/complete",
                json={
                    "user_id": "user-1",
                    "course_id": "course-1",
                    "module_id": module_id,
                    "content_id": position,
                },
            )
            assert response.status_code == 200


class TestGenerate:
    def test_requires_token(self, client: TestClient) -> None:
        response = client.post("/v1/certificates/generate/course-1")
        assert response.status_code == 401

    def test_incomplete_course(self, client: TestClient) -> None:
        response = client.post(
            "/v1/certificates/generate/course-1", headers=_headers()
        )

        assert response.status_code == 412
        data = response.json()
        assert data["code"] == "course_not_completed"
        assert data["progress"] == 0
        assert data["missing"] == 100

    def test_exam_required(self, client: TestClient, catalog) -> None:
        _complete_course(client)
        catalog.active_exams.add("course-1")

        response = client.post(
            "/v1/certificates/generate/course-1", headers=_headers()
        )

        assert response.status_code == 412
        assert response.json()["requires_exam"] is True

    def test_not_entitled(self, client: TestClient) -> None:
        response = client.post(
            "/v1/certificates/generate/course-1", headers=_headers("user-2")
        )
        assert response.status_code == 403

    def test_incomplete_profile(self, client: TestClient) -> None:
        response = client.post(
            "/v1/certificates/generate/course-1", headers=_headers("user-3")
        )
        assert response.status_code == 400
        assert response.json()["code"] == "incomplete_profile"

    def test_returns_pdf(self, client: TestClient, certificate_session) -> None:
        _complete_course(client)

        response = client.post(
            "/v1/certificates/generate/course-1", headers=_headers()
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")
        assert (
            response.headers["content-disposition"]
            == 'attachment; filename="certificado-Farmacologia-Basica.pdf"'
        )
        assert response.headers["x-certificate-id"] in certificate_session.rows

    def test_render_failure(self, client: TestClient, mock_renderer) -> None:
        _complete_course(client)
        mock_renderer.render_async.side_effect = RuntimeError("boom")

        response = client.post(
            "/v1/certificates/generate/course-1", headers=_headers()
        )

        assert response.status_code == 500
        assert response.json()["code"] == "certificate_render_failed"


class TestValidate:
    def test_public_validation(self, client: TestClient) -> None:
        _complete_course(client)
        generated = client.post(
            "/v1/certificates/generate/course-1", headers=_headers()
        )
        certificate_id = generated.headers["x-certificate-id"]

        response = client.get(f"/v1/certificates/validate/{certificate_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["certificate"]["full_name"] == "Ana Pérez"
        assert data["certificate"]["kind"] == "participation"

    def test_unknown_certificate_is_200(self, client: TestClient) -> None:
        response = client.get("/v1/certificates/validate/no-existe")

        assert response.status_code == 200
        assert response.json() == {
            "valid": False,
            "message": "Certificado no encontrado",
            "certificate": None,
        }


class TestEligibility:
    def test_not_eligible(self, client: TestClient) -> None:
        response = client.get(
            "/v1/certificates/eligibility/course-1", headers=_headers()
        )

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "NOT_ELIGIBLE"
        assert data["reason"] == "course_not_completed"
        assert data["kind"] is None

    def test_eligible(self, client: TestClient) -> None:
        _complete_course(client)

        response = client.get(
            "/v1/certificates/eligibility/course-1", headers=_headers()
        )

        data = response.json()
        assert data["state"] == "ELIGIBLE"
        assert data["percentage"] == 100
        assert data["kind"] == "participation"


class TestDownload:
    def test_download(self, client: TestClient) -> None:
        _complete_course(client)
        generated = client.post(
            "/v1/certificates/generate/course-1", headers=_headers()
        )
        certificate_id = generated.headers["x-certificate-id"]

        response = client.get(f"/v1/certificates/{certificate_id}/pdf")

        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    def test_download_unknown(self, client: TestClient) -> None:
        response = client.get("/v1/certificates/no-existe/pdf")
        assert response.status_code == 404
