import json

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework import exceptions

from accounts import permissions as perms
from accounts.models import Role, UserProfile, VerifierRequest

User = get_user_model()


class UserProfileSignalTests(TestCase):
    def test_profile_created_as_student(self):
        user = User.objects.create_user(username="s1", password="pass")
        self.assertEqual(user.profile.role, Role.STUDENT)

    def test_superuser_profile_is_admin(self):
        user = User.objects.create_superuser(username="root", password="pass", email="r@x.io")
        self.assertEqual(user.profile.role, Role.ADMIN)


class CapabilityTests(TestCase):
    def setUp(self):
        self.student = User.objects.create_user(username="student", password="pass")
        self.verifier = User.objects.create_user(username="verifier", password="pass")
        self._set_role(self.verifier, Role.VERIFIER)
        self.admin = User.objects.create_user(username="admin", password="pass")
        self._set_role(self.admin, Role.ADMIN)

    def _set_role(self, user, role):
        user.profile.role = role
        user.profile.save(update_fields=["role"])

    def test_role_resolution(self):
        self.assertEqual(perms.role_for(self.student), Role.STUDENT)
        self.assertEqual(perms.role_for(self.verifier), Role.VERIFIER)
        self.assertEqual(perms.role_for(self.admin), Role.ADMIN)
        self.assertIsNone(perms.role_for(AnonymousUser()))

    def test_student_capabilities(self):
        self.assertTrue(perms.has_capability(self.student, perms.ENROLL))
        self.assertTrue(perms.has_capability(self.student, perms.SUBMIT_ASSIGNMENT))
        self.assertFalse(perms.has_capability(self.student, perms.EVALUATE_SUBMISSION))
        self.assertFalse(perms.has_capability(self.student, perms.ISSUE_CERTIFICATE))

    def test_verifier_cannot_enroll_or_revoke(self):
        self.assertTrue(perms.has_capability(self.verifier, perms.FINALIZE_ENROLLMENT))
        self.assertFalse(perms.has_capability(self.verifier, perms.ENROLL))
        self.assertFalse(perms.has_capability(self.verifier, perms.REVOKE_CERTIFICATE))

    def test_only_admin_revokes(self):
        self.assertTrue(perms.has_capability(self.admin, perms.REVOKE_CERTIFICATE))

    def test_authorize_raises(self):
        with self.assertRaises(exceptions.NotAuthenticated):
            perms.authorize(AnonymousUser(), perms.ENROLL)
        with self.assertRaises(exceptions.PermissionDenied):
            perms.authorize(self.student, perms.GENERATE_RESULTS)
        self.assertEqual(perms.authorize(self.verifier, perms.GENERATE_RESULTS), Role.VERIFIER)

    def test_assigned_verifier_check(self):
        perms.ensure_assigned_verifier(self.verifier, self.verifier.pk)
        perms.ensure_assigned_verifier(self.admin, None)
        with self.assertRaises(exceptions.PermissionDenied):
            perms.ensure_assigned_verifier(self.verifier, None)
        with self.assertRaises(exceptions.PermissionDenied):
            perms.ensure_assigned_verifier(self.verifier, self.admin.pk)

    def test_owner_check(self):
        perms.ensure_owner(self.student, self.student.pk)
        perms.ensure_owner(self.admin, self.student.pk)
        with self.assertRaises(exceptions.PermissionDenied):
            perms.ensure_owner(self.verifier, self.student.pk)


class RoleLookupTests(TestCase):
    def test_role_lookup_does_not_write(self):
        user = User.objects.create_user(username="reader", password="pass")
        user = User.objects.get(pk=user.pk)

        with self.assertNumQueries(1):
            self.assertEqual(perms.role_for(user), Role.STUDENT)
        with self.assertNumQueries(0):
            self.assertTrue(perms.has_capability(user, perms.ENROLL))

    def test_missing_profile_falls_back_to_student(self):
        user = User.objects.create_user(username="bare", password="pass")
        UserProfile.objects.filter(user=user).delete()
        user = User.objects.get(pk=user.pk)

        self.assertEqual(perms.role_for(user), Role.STUDENT)
        self.assertFalse(UserProfile.objects.filter(user=user).exists())


class VerifierRequestApiTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser(
            username="root", password="pass", email="root@college.edu"
        )

    def _post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type="application/json")

    def _apply(self, email="ravi@college.edu", **extra):
        payload = {"name": "Ravi Kumar", "email": email, "college": "RGUKT", **extra}
        return self._post("/api/verifier-requests/", payload)

    def test_anyone_can_apply(self):
        response = self._apply(phone="9876543210")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["status"], VerifierRequest.Status.PENDING)

    def test_duplicate_email_conflicts(self):
        self._apply()
        response = self._apply(email="RAVI@college.edu")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(VerifierRequest.objects.count(), 1)

    def test_email_domain_must_be_allowed(self):
        response = self._apply(email="ravi@gmail.com")
        self.assertEqual(response.status_code, 400)

    def test_listing_is_admin_only(self):
        self._apply()
        student = User.objects.create_user(username="s", password="pass")
        self.client.force_login(student)
        self.assertEqual(self.client.get("/api/verifier-requests/").status_code, 403)

        self.client.force_login(self.admin)
        response = self.client.get("/api/verifier-requests/", {"status": "pending"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 1)

    def test_accept_creates_verifier_account(self):
        request_id = self._apply().json()["id"]
        self.client.force_login(self.admin)

        response = self._post(f"/api/verifier-requests/{request_id}/accept/")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["status"], VerifierRequest.Status.ACCEPTED)
        user = User.objects.get(email="ravi@college.edu")
        self.assertEqual(payload["user"], user.pk)
        self.assertTrue(user.check_password(payload["password"]))
        self.assertEqual(perms.role_for(user), Role.VERIFIER)
        self.assertEqual(user.profile.college, "RGUKT")

        again = self._post(f"/api/verifier-requests/{request_id}/accept/")
        self.assertEqual(again.status_code, 409)

    def test_accept_promotes_existing_student(self):
        student = User.objects.create_user(
            username="ravi", password="old-pass", email="ravi@college.edu"
        )
        request_id = self._apply().json()["id"]
        self.client.force_login(self.admin)

        payload = self._post(f"/api/verifier-requests/{request_id}/accept/").json()

        student = User.objects.get(pk=student.pk)
        self.assertEqual(payload["user"], student.pk)
        self.assertFalse(student.check_password("old-pass"))
        self.assertEqual(perms.role_for(student), Role.VERIFIER)

    def test_reject(self):
        request_id = self._apply().json()["id"]
        self.client.force_login(self.admin)

        response = self._post(f"/api/verifier-requests/{request_id}/reject/")
        self.assertEqual(response.json()["status"], VerifierRequest.Status.REJECTED)
        self.assertEqual(response.json()["processed_by"], self.admin.pk)
        self.assertFalse(User.objects.filter(email="ravi@college.edu").exists())

    def test_accepted_request_cannot_be_rejected(self):
        request_id = self._apply().json()["id"]
        self.client.force_login(self.admin)
        self._post(f"/api/verifier-requests/{request_id}/accept/")

        response = self._post(f"/api/verifier-requests/{request_id}/reject/")
        self.assertEqual(response.status_code, 409)

    def test_unknown_request(self):
        self.client.force_login(self.admin)
        response = self._post("/api/verifier-requests/999999/accept/")
        self.assertEqual(response.status_code, 404)
