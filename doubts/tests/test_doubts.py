import json

from django.test import TestCase

from assessments.tests import factories
from doubts import services
from doubts.models import Doubt, DoubtReply


class DoubtApiTests(TestCase):
    def setUp(self):
        self.verifier = factories.create_user(role="verifier")
        self.student = factories.create_user()
        self.course = factories.create_course(verifiers=[self.verifier])
        self.module = factories.create_module(self.course, title="Queues")
        factories.enroll(self.student, self.course, verifier=self.verifier)
        self.client.force_login(self.student)

    def _post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type="application/json")

    def _patch(self, url, payload):
        return self.client.patch(url, data=json.dumps(payload), content_type="application/json")

    def _ask(self, message="Why is a queue FIFO?", **extra):
        return self._post(
            f"/api/courses/{self.course.pk}/doubts/",
            {"message": message, "module_id": self.module.pk, **extra},
        )

    def test_enrolled_student_raises_doubt(self):
        response = self._ask(attachments=["https://example.com/screenshot.png"])

        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["status"], Doubt.Status.OPEN)
        self.assertEqual(payload["module_title"], "Queues")
        self.assertEqual(payload["attachments"], ["https://example.com/screenshot.png"])
        self.assertEqual(payload["replies"], [])

    def test_student_not_enrolled_is_denied(self):
        self.client.force_login(factories.create_user())
        response = self._ask()
        self.assertEqual(response.status_code, 403)
        self.assertFalse(Doubt.objects.exists())

    def test_module_from_another_course_is_invalid(self):
        other_module = factories.create_module(factories.create_course(), title="Trees")
        response = self._ask(module_id=other_module.pk)
        self.assertEqual(response.status_code, 400)

    def test_verifier_cannot_raise_doubt(self):
        self.client.force_login(self.verifier)
        self.assertEqual(self._ask().status_code, 403)

    def test_verifier_answer_marks_doubt_answered(self):
        doubt_id = self._ask().json()["id"]

        self.client.force_login(self.verifier)
        response = self._patch(f"/api/doubts/{doubt_id}/answer/", {"message": "First in, first out."})

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["status"], Doubt.Status.ANSWERED)
        self.assertEqual(len(payload["replies"]), 1)
        self.assertEqual(payload["replies"][0]["responder"], self.verifier.pk)

    def test_student_follow_up_keeps_doubt_open(self):
        doubt_id = self._ask().json()["id"]
        response = self._patch(f"/api/doubts/{doubt_id}/answer/", {"message": "Also, stacks?"})

        self.assertEqual(response.json()["status"], Doubt.Status.OPEN)
        self.assertEqual(DoubtReply.objects.filter(doubt_id=doubt_id).count(), 1)

    def test_outsider_cannot_answer(self):
        doubt_id = self._ask().json()["id"]

        self.client.force_login(factories.create_user(role="verifier"))
        response = self._patch(f"/api/doubts/{doubt_id}/answer/", {"message": "Hi"})
        self.assertEqual(response.status_code, 403)

        self.client.force_login(factories.create_user())
        response = self._patch(f"/api/doubts/{doubt_id}/answer/", {"message": "Hi"})
        self.assertEqual(response.status_code, 403)

    def test_closed_doubt_refuses_replies(self):
        doubt_id = self._ask().json()["id"]
        close = self._post(f"/api/doubts/{doubt_id}/close/")
        self.assertEqual(close.json()["status"], Doubt.Status.CLOSED)

        response = self._patch(f"/api/doubts/{doubt_id}/answer/", {"message": "One more"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["kind"], "invalid_state")

    def test_answer_unknown_doubt(self):
        response = self._patch("/api/doubts/999999/answer/", {"message": "Hi"})
        self.assertEqual(response.status_code, 404)


class DoubtVisibilityTests(TestCase):
    def setUp(self):
        self.verifier = factories.create_user(role="verifier")
        self.student = factories.create_user()
        self.course = factories.create_course(verifiers=[self.verifier])
        self.other_course = factories.create_course()
        factories.enroll(self.student, self.course)
        factories.enroll(self.student, self.other_course)

        self.mine = services.create_doubt(self.student, self.course.pk, "Question one")
        self.elsewhere = services.create_doubt(self.student, self.other_course.pk, "Question two")
        classmate = factories.create_user()
        factories.enroll(classmate, self.course)
        self.classmate_doubt = services.create_doubt(classmate, self.course.pk, "Question three")

    def _ids(self, **params):
        response = self.client.get("/api/doubts/", params)
        return {item["id"] for item in response.json()}

    def test_student_sees_own_doubts(self):
        self.client.force_login(self.student)
        self.assertEqual(self._ids(), {self.mine.pk, self.elsewhere.pk})
        self.assertEqual(self._ids(course=self.course.pk), {self.mine.pk})

    def test_verifier_sees_doubts_of_their_courses(self):
        self.client.force_login(self.verifier)
        self.assertEqual(self._ids(), {self.mine.pk, self.classmate_doubt.pk})

    def test_status_filter(self):
        services.answer_doubt(self.verifier, self.mine.pk, "Answered")
        self.client.force_login(self.verifier)
        self.assertEqual(self._ids(status="open"), {self.classmate_doubt.pk})
        self.assertEqual(self._ids(status="answered"), {self.mine.pk})

    def test_admin_sees_everything(self):
        self.client.force_login(factories.create_user(role="admin"))
        self.assertEqual(
            self._ids(), {self.mine.pk, self.elsewhere.pk, self.classmate_doubt.pk}
        )
