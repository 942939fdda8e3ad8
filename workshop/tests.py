from datetime import timedelta

from django.core.exceptions import PermissionDenied
from django.http import Http404
from django.test import SimpleTestCase
from rest_framework import exceptions

from workshop.config import PlatformConfig, _parse_duration
from workshop.exceptions import (
    CertificateCollision,
    InvalidState,
    PracticalScoreRequired,
    api_exception_handler,
    error_kind,
)


class PlatformConfigTests(SimpleTestCase):
    def test_defaults(self):
        config = PlatformConfig.from_env({})
        self.assertEqual(config.session_lifetime, timedelta(days=7))
        self.assertEqual(config.email_port, 587)
        self.assertTrue(config.email_use_tls)
        self.assertIn("@college.edu", config.allowed_email_domains)

    def test_environment_overrides(self):
        config = PlatformConfig.from_env(
            {
                "JWT_SECRET": "s3cret",
                "JWT_EXPIRE": "12h",
                "EMAIL_PORT": "2525",
                "EMAIL_USE_TLS": "false",
                "EMAIL_USER": "mailer",
                "EMAIL_PASS": "hunter2",
                "ALLOWED_EMAIL_DOMAINS": "example.edu, @uni.ac.in",
                "CERTIFICATE_BASE_URL": "https://certs.example.edu/",
            }
        )
        self.assertEqual(config.secret_key, "s3cret")
        self.assertEqual(config.session_lifetime, timedelta(hours=12))
        self.assertEqual(config.email_port, 2525)
        self.assertFalse(config.email_use_tls)
        self.assertEqual(config.email_host_user, "mailer")
        self.assertEqual(config.allowed_email_domains, ("@example.edu", "@uni.ac.in"))
        self.assertEqual(
            config.verification_url("abc"),
            "https://certs.example.edu/api/certificates/verify/abc/",
        )
        self.assertNotIn("hunter2", repr(config))

    def test_email_domain_check(self):
        config = PlatformConfig(secret_key="x", allowed_email_domains=("@college.edu",))
        self.assertTrue(config.is_allowed_email("Asha@College.edu"))
        self.assertFalse(config.is_allowed_email("asha@gmail.com"))
        self.assertFalse(config.is_allowed_email(""))

    def test_duration_parsing(self):
        self.assertEqual(_parse_duration("30m"), timedelta(minutes=30))
        self.assertEqual(_parse_duration("3600"), timedelta(hours=1))
        with self.assertRaises(ValueError):
            _parse_duration("soon")


class ExceptionHandlerTests(SimpleTestCase):
    def test_error_kinds(self):
        self.assertEqual(error_kind(exceptions.NotFound()), "not_found")
        self.assertEqual(error_kind(Http404()), "not_found")
        self.assertEqual(error_kind(PermissionDenied()), "permission_denied")
        self.assertEqual(error_kind(exceptions.ValidationError("x")), "invalid")
        self.assertEqual(error_kind(InvalidState()), "invalid_state")
        self.assertEqual(error_kind(PracticalScoreRequired()), "practical_score_required")
        self.assertEqual(error_kind(CertificateCollision()), "collision")

    def test_response_shape(self):
        response = api_exception_handler(InvalidState("Already submitted."), {})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(
            response.data, {"kind": "invalid_state", "detail": "Already submitted."}
        )

    def test_field_errors_are_kept(self):
        response = api_exception_handler(
            exceptions.ValidationError({"email": ["Bad email."]}), {}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["kind"], "invalid")
        self.assertEqual(response.data["detail"], {"email": ["Bad email."]})

    def test_unhandled_errors_pass_through(self):
        self.assertIsNone(api_exception_handler(ValueError("boom"), {}))
