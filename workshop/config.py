"""Platform configuration.

All environment-derived options are parsed once into an immutable
:class:`PlatformConfig`.  ``settings.py`` builds the instance and exposes it
as ``settings.PLATFORM``; services receive it as an explicit argument.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Mapping

DEFAULT_ALLOWED_EMAIL_DOMAINS = ("@college.edu", "@university.edu", "@rguktn.ac.in")


def _parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_duration(value: str) -> timedelta:
    """
    Parse strings like "7d", "12h", "30m", "3600s" or a bare number of seconds.
    """
    match = re.fullmatch(r"\s*(\d+)\s*([smhd]?)\s*", value)
    if not match:
        raise ValueError(f"Invalid duration value: {value}")

    amount = int(match.group(1))
    unit = match.group(2) or "s"
    unit_seconds = {"s": 1, "m": 60, "h": 3600, "d": 86400}[unit]
    return timedelta(seconds=amount * unit_seconds)


def _parse_domains(value: str | None) -> tuple[str, ...]:
    if not value:
        return DEFAULT_ALLOWED_EMAIL_DOMAINS
    domains = []
    for raw in value.split(","):
        domain = raw.strip().lower()
        if not domain:
            continue
        if not domain.startswith("@"):
            domain = f"@{domain}"
        domains.append(domain)
    return tuple(domains)


@dataclass(frozen=True)
class PlatformConfig:
    secret_key: str
    session_lifetime: timedelta = timedelta(days=7)
    email_host: str = "smtp.gmail.com"
    email_port: int = 587
    email_host_user: str = ""
    email_host_password: str = field(default="", repr=False)
    email_use_tls: bool = True
    email_from: str = "CSE Workshop <noreply@localhost>"
    allowed_email_domains: tuple[str, ...] = DEFAULT_ALLOWED_EMAIL_DOMAINS
    frontend_url: str = "http://localhost:3000"
    certificate_base_url: str = "http://localhost:8000"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PlatformConfig":
        env = os.environ if environ is None else environ
        secret = env.get("JWT_SECRET") or env.get("SECRET_KEY") or "django-insecure-placeholder"
        return cls(
            secret_key=secret,
            session_lifetime=_parse_duration(env.get("JWT_EXPIRE", "7d")),
            email_host=env.get("EMAIL_HOST", "smtp.gmail.com"),
            email_port=int(env.get("EMAIL_PORT", "587")),
            email_host_user=env.get("EMAIL_HOST_USER", env.get("EMAIL_USER", "")),
            email_host_password=env.get("EMAIL_HOST_PASSWORD", env.get("EMAIL_PASS", "")),
            email_use_tls=_parse_bool(env.get("EMAIL_USE_TLS"), default=True),
            email_from=env.get("EMAIL_FROM", "CSE Workshop <noreply@localhost>"),
            allowed_email_domains=_parse_domains(env.get("ALLOWED_EMAIL_DOMAINS")),
            frontend_url=env.get("FRONTEND_URL", "http://localhost:3000").rstrip("/"),
            certificate_base_url=env.get(
                "CERTIFICATE_BASE_URL", "http://localhost:8000"
            ).rstrip("/"),
        )

    def is_allowed_email(self, email: str) -> bool:
        normalized = (email or "").strip().lower()
        if not normalized:
            return False
        return any(normalized.endswith(domain) for domain in self.allowed_email_domains)

    def verification_url(self, verification_hash: str) -> str:
        return f"{self.certificate_base_url}/api/certificates/verify/{verification_hash}/"

    def dashboard_url(self) -> str:
        return f"{self.frontend_url}/dashboard"


def get_platform_config() -> PlatformConfig:
    """Return the configuration instance built by the settings module."""
    from django.conf import settings

    return settings.PLATFORM
