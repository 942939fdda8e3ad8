import json

from django.test import TestCase

from assessments.tests import factories
from certificates import services
from certificates.models import Certificate
from courses.models import Enrollment
from workshop.config import get_platform_config


class CertificateApiTests(TestCase):
    def setUp(self):
        self.verifier = factories.create_user(role="verifier")
        self.student = factories.create_user()
        self.course = factories.create_course(title="Python Bootcamp", verifiers=[self.verifier])
        self.enrollment = factories.enroll(
            self.student, self.course, verifier=self.verifier, name="Meera Das"
        )
        assignment = factories.create_assignment(self.course)
        factories.add_mcq(assignment, max_marks=10)
        factories.create_submission(self.enrollment, assignment, auto_score=7)

    def _post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type="application/json")

    def _finalize(self, passed=True, **extra):
        return self._post(
            f"/api/enrollments/{self.enrollment.pk}/finalize/", {"passed": passed, **extra}
        )

    def test_finalize_pass_returns_certificate(self):
        self.client.force_login(self.verifier)
        response = self._finalize()

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["enrollment"]["status"], Enrollment.Status.COMPLETED)
        self.assertEqual(payload["certificate"]["grade"], "C")
        self.assertAlmostEqual(payload["certificate"]["total_score"], 70.0)

    def test_finalize_practical_course_without_score(self):
        self.course.has_practical_session = True
        self.course.save()
        self.client.force_login(self.verifier)

        response = self._finalize()

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["kind"], "practical_score_required")

    def test_issue_endpoint_is_idempotent(self):
        Enrollment.objects.filter(pk=self.enrollment.pk).update(status=Enrollment.Status.COMPLETED)
        self.client.force_login(self.verifier)
        url = f"/api/enrollments/{self.enrollment.pk}/certificate/"

        first = self._post(url)
        second = self._post(url)

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(first.json()["id"], second.json()["id"])

    def test_student_cannot_finalize(self):
        self.client.force_login(self.student)
        response = self._finalize()
        self.assertEqual(response.status_code, 403)

    def test_student_lists_own_certificates(self):
        self.client.force_login(self.verifier)
        self._finalize()
        other = factories.enroll(
            factories.create_user(), self.course, verifier=self.verifier
        )
        services.finalize_enrollment(
            self.verifier, other.pk, True, config=get_platform_config()
        )

        self.client.force_login(self.student)
        response = self.client.get("/api/certificates/")
        self.assertEqual(len(response.json()), 1)
        self.assertEqual(response.json()[0]["student_name"], "Meera Das")

    def test_render_payload(self):
        self.client.force_login(self.verifier)
        certificate_id = self._finalize().json()["certificate"]["id"]

        self.client.force_login(self.student)
        response = self.client.get(f"/api/certificates/{certificate_id}/payload/")

        payload = response.json()
        certificate = Certificate.objects.get(pk=certificate_id)
        self.assertEqual(payload["course_title"], "Python Bootcamp")
        self.assertEqual(payload["certificate_number"], certificate.certificate_number)
        self.assertTrue(
            payload["verification_url"].endswith(
                f"/api/certificates/verify/{certificate.verification_hash}/"
            )
        )

    def test_revoke_requires_admin(self):
        self.client.force_login(self.verifier)
        certificate_id = self._finalize().json()["certificate"]["id"]
        url = f"/api/certificates/{certificate_id}/revoke/"

        self.assertEqual(self._post(url).status_code, 403)

        self.client.force_login(factories.create_user(role="admin"))
        response = self._post(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], Certificate.Status.REVOKED)


class VerifyCertificateApiTests(TestCase):
    def setUp(self):
        verifier = factories.create_user(role="verifier")
        course = factories.create_course(title="Networks", verifiers=[verifier])
        enrollment = factories.enroll(
            factories.create_user(), course, verifier=verifier, name="Kiran Patel"
        )
        _, result = services.finalize_enrollment(
            verifier, enrollment.pk, True, config=get_platform_config()
        )
        self.certificate = result.certificate

    def _verify(self, verification_hash):
        return self.client.get(f"/api/certificates/verify/{verification_hash}/")

    def test_valid_certificate_is_public(self):
        response = self._verify(self.certificate.verification_hash)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {
                "valid": True,
                "student_name": "Kiran Patel",
                "course_title": "Networks",
                "issue_date": self.certificate.issue_date.date().isoformat(),
                "certificate_number": self.certificate.certificate_number,
            },
        )

    def test_unknown_hash(self):
        response = self._verify("0" * 64)
        payload = response.json()
        self.assertFalse(payload["valid"])
        self.assertEqual(payload["reason"], "not_found")

    def test_revoked_certificate(self):
        Certificate.objects.filter(pk=self.certificate.pk).update(
            status=Certificate.Status.REVOKED
        )
        payload = self._verify(self.certificate.verification_hash).json()
        self.assertFalse(payload["valid"])
        self.assertEqual(payload["reason"], "revoked")
        self.assertNotIn("certificate_number", payload)
