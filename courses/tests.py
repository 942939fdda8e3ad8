import json

from django.test import TestCase, override_settings

from assessments.tests import factories
from certificates.models import Certificate
from courses.models import Course, Enrollment
from workshop.config import PlatformConfig


class CourseModelTests(TestCase):
    def test_code_is_upper_cased_on_save(self):
        course = factories.create_course(code=" ds-101 ")
        self.assertEqual(course.code, "DS-101")

    def test_only_published_courses_accept_enrollment(self):
        self.assertTrue(factories.create_course().is_open_for_enrollment)
        self.assertFalse(
            factories.create_course(status=Course.Status.DRAFT).is_open_for_enrollment
        )

    def test_student_name_prefers_snapshot(self):
        student = factories.create_user(first_name="Ravi", last_name="K")
        enrollment = factories.enroll(student, factories.create_course(), name="Ravi Kumar")
        self.assertEqual(enrollment.student_name, "Ravi Kumar")

        enrollment.profile_snapshot = {}
        self.assertEqual(enrollment.student_name, "Ravi K")


class EnrollApiTests(TestCase):
    def setUp(self):
        self.verifier = factories.create_user(role="verifier")
        self.course = factories.create_course(verifiers=[self.verifier])
        self.student = factories.create_user(username="asha", email="asha@college.edu")
        self.client.force_login(self.student)
        self.url = f"/api/courses/{self.course.pk}/enroll/"
        self.payload = {
            "name": "Asha Rao",
            "email": "asha@college.edu",
            "class_year": "E3",
            "college": "RGUKT",
            "mobile": "9876543210",
            "verifier_id": self.verifier.pk,
        }

    def _enroll(self, **overrides):
        payload = {**self.payload, **overrides}
        return self.client.post(self.url, data=json.dumps(payload), content_type="application/json")

    def test_enrollment_captures_snapshot_and_profile(self):
        response = self._enroll()
        self.assertEqual(response.status_code, 201)

        enrollment = Enrollment.objects.get(student=self.student, course=self.course)
        self.assertEqual(enrollment.verifier, self.verifier)
        self.assertEqual(enrollment.status, Enrollment.Status.ONGOING)
        self.assertEqual(enrollment.profile_snapshot["name"], "Asha Rao")
        self.assertEqual(enrollment.profile_snapshot["mobile"], "9876543210")

        self.student.profile.refresh_from_db()
        self.assertEqual(self.student.profile.college, "RGUKT")

    def test_duplicate_enrollment_is_conflict(self):
        self._enroll()
        response = self._enroll()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["kind"], "invalid_state")

    def test_draft_course_is_not_open(self):
        self.course.status = Course.Status.DRAFT
        self.course.save()
        response = self._enroll()
        self.assertEqual(response.status_code, 409)

    def test_email_must_match_account(self):
        response = self._enroll(email="someone@college.edu")
        self.assertEqual(response.status_code, 400)
        self.assertIn("email", response.json()["detail"])

    def test_email_domain_must_be_allowed(self):
        self.student.email = "asha@gmail.com"
        self.student.save()
        response = self._enroll(email="asha@gmail.com")
        self.assertEqual(response.status_code, 400)

    @override_settings(PLATFORM=PlatformConfig(secret_key="x", allowed_email_domains=("@gmail.com",)))
    def test_allowed_domains_come_from_configuration(self):
        self.student.email = "asha@gmail.com"
        self.student.save()
        response = self._enroll(email="asha@gmail.com")
        self.assertEqual(response.status_code, 201)

    def test_verifier_must_belong_to_course(self):
        outsider = factories.create_user(role="verifier")
        response = self._enroll(verifier_id=outsider.pk)
        self.assertEqual(response.status_code, 400)

    def test_missing_course_is_not_found(self):
        self.url = "/api/courses/999999/enroll/"
        response = self._enroll()
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["kind"], "not_found")

    def test_verifier_cannot_enroll(self):
        self.client.force_login(self.verifier)
        response = self._enroll()
        self.assertEqual(response.status_code, 403)


class EnrollmentListApiTests(TestCase):
    def setUp(self):
        self.verifier = factories.create_user(role="verifier")
        self.course = factories.create_course(verifiers=[self.verifier])
        self.student = factories.create_user()
        self.own = factories.enroll(self.student, self.course, verifier=self.verifier)
        self.other = factories.enroll(factories.create_user(), self.course)

    def test_student_sees_own_enrollments(self):
        self.client.force_login(self.student)
        response = self.client.get("/api/enrollments/")
        self.assertEqual([item["id"] for item in response.json()], [self.own.pk])
        self.assertFalse(response.json()[0]["has_certificate"])

    def test_verifier_sees_assigned_enrollments(self):
        self.client.force_login(self.verifier)
        response = self.client.get("/api/enrollments/")
        self.assertEqual([item["id"] for item in response.json()], [self.own.pk])

    def test_admin_sees_everything(self):
        admin = factories.create_user(role="admin")
        self.client.force_login(admin)
        response = self.client.get("/api/enrollments/")
        self.assertEqual(len(response.json()), 2)


class CourseResultsApiTests(TestCase):
    def setUp(self):
        self.verifier = factories.create_user(role="verifier")
        self.course = factories.create_course(verifiers=[self.verifier])
        self.enrollment = factories.enroll(
            factories.create_user(), self.course, status=Enrollment.Status.COMPLETED
        )
        assignment = factories.create_assignment(self.course)
        factories.add_mcq(assignment, max_marks=10)
        factories.create_submission(self.enrollment, assignment, auto_score=9)

    def test_verifier_generates_results(self):
        self.client.force_login(self.verifier)
        response = self.client.post(f"/api/courses/{self.course.pk}/results/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["succeeded"], [self.enrollment.pk])
        self.enrollment.refresh_from_db()
        self.assertAlmostEqual(self.enrollment.final_score, 90.0)

    def test_student_cannot_generate_results(self):
        self.client.force_login(self.enrollment.student)
        response = self.client.post(f"/api/courses/{self.course.pk}/results/")
        self.assertEqual(response.status_code, 403)


class AnalyticsApiTests(TestCase):
    def setUp(self):
        self.algorithms = factories.create_course(title="Algorithms")
        self.networks = factories.create_course(title="Networks")

        self.asha = self._student("RGUKT")
        self.ravi = self._student("RGUKT")
        self.kiran = self._student("")
        self._student("IIT")

        first = factories.enroll(self.asha, self.algorithms, status=Enrollment.Status.COMPLETED)
        Enrollment.objects.filter(pk=first.pk).update(theory_score=90, final_score=90)
        self._certificate(first, "A")
        factories.enroll(self.ravi, self.algorithms)
        second = factories.enroll(self.kiran, self.networks, status=Enrollment.Status.COMPLETED)
        self._certificate(second, "C", status=Certificate.Status.REVOKED)
        factories.enroll(self.asha, self.networks, status=Enrollment.Status.FAILED)

        self.client.force_login(factories.create_user(role="admin"))

    def _student(self, college):
        user = factories.create_user()
        user.profile.college = college
        user.profile.save()
        return user

    def _certificate(self, enrollment, grade, status=Certificate.Status.ISSUED):
        return Certificate.objects.create(
            enrollment=enrollment,
            student=enrollment.student,
            course=enrollment.course,
            certificate_number=f"CERT-{enrollment.pk}",
            verification_hash=f"{enrollment.pk:064d}",
            grade=grade,
            status=status,
        )

    def test_overview(self):
        response = self.client.get("/api/analytics/overview/")
        self.assertEqual(
            response.json(),
            {
                "total_students": 4,
                "total_courses": 2,
                "total_enrollments": 4,
                "completed_enrollments": 2,
                "completion_rate": 50.0,
                "total_certificates": 2,
            },
        )

    def test_course_analytics_counts_issued_certificates(self):
        response = self.client.get("/api/analytics/courses/")
        rows = {row["course_title"]: row for row in response.json()}

        self.assertEqual(rows["Algorithms"]["total_enrollments"], 2)
        self.assertEqual(rows["Algorithms"]["completed_enrollments"], 1)
        self.assertEqual(rows["Algorithms"]["certificates_issued"], 1)
        self.assertEqual(rows["Algorithms"]["completion_rate"], 50.0)
        self.assertEqual(rows["Networks"]["certificates_issued"], 0)

    def test_course_results_summary(self):
        response = self.client.get(f"/api/analytics/courses/{self.algorithms.pk}/")

        payload = response.json()
        self.assertEqual(payload["average_final"], 90.0)
        self.assertEqual(payload["grade_distribution"], {"A": 1})
        self.assertFalse(payload["results_generated"])

    def test_course_results_summary_unknown_course(self):
        response = self.client.get("/api/analytics/courses/999999/")
        self.assertEqual(response.status_code, 404)

    def test_college_analytics(self):
        response = self.client.get("/api/analytics/colleges/")
        self.assertEqual(
            response.json(),
            [
                {
                    "college": "RGUKT",
                    "total_students": 2,
                    "total_enrollments": 3,
                    "completed_enrollments": 1,
                    "completion_rate": 33.33,
                },
                {
                    "college": "Unknown",
                    "total_students": 1,
                    "total_enrollments": 1,
                    "completed_enrollments": 1,
                    "completion_rate": 100.0,
                },
            ],
        )

    def test_analytics_are_admin_only(self):
        self.client.force_login(factories.create_user(role="verifier"))
        self.assertEqual(self.client.get("/api/analytics/overview/").status_code, 403)
        self.client.force_login(self.asha)
        self.assertEqual(self.client.get("/api/analytics/colleges/").status_code, 403)
