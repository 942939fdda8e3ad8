"""Role based authorization.

Every request is checked exactly once against the capability set of the
caller's role before any service is invoked.  Record-level ownership
(submission owner, assigned verifier) is checked by the services themselves
through :func:`ensure_owner` and :func:`ensure_assigned_verifier`.
"""
from __future__ import annotations

from rest_framework import exceptions
from rest_framework.permissions import BasePermission

from .models import Role

ENROLL = "enroll"
SUBMIT_ASSIGNMENT = "submit_assignment"
VIEW_OWN_RECORDS = "view_own_records"
EVALUATE_SUBMISSION = "evaluate_submission"
FINALIZE_ENROLLMENT = "finalize_enrollment"
ISSUE_CERTIFICATE = "issue_certificate"
GENERATE_RESULTS = "generate_results"
REVOKE_CERTIFICATE = "revoke_certificate"
ASK_DOUBT = "ask_doubt"
REPLY_DOUBT = "reply_doubt"
VIEW_ANALYTICS = "view_analytics"
MANAGE_VERIFIERS = "manage_verifiers"

_STUDENT_CAPABILITIES = frozenset(
    {ENROLL, SUBMIT_ASSIGNMENT, VIEW_OWN_RECORDS, ASK_DOUBT, REPLY_DOUBT}
)
_VERIFIER_CAPABILITIES = frozenset(
    {
        VIEW_OWN_RECORDS,
        REPLY_DOUBT,
        EVALUATE_SUBMISSION,
        FINALIZE_ENROLLMENT,
        ISSUE_CERTIFICATE,
        GENERATE_RESULTS,
    }
)

ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    Role.STUDENT: _STUDENT_CAPABILITIES,
    Role.VERIFIER: _VERIFIER_CAPABILITIES,
    Role.ADMIN: _VERIFIER_CAPABILITIES | {REVOKE_CERTIFICATE, VIEW_ANALYTICS, MANAGE_VERIFIERS},
}


def role_for(user) -> Role | None:
    """Return the role of an authenticated ``user`` or ``None``."""
    if user is None or not user.is_authenticated:
        return None
    if user.is_superuser:
        return Role.ADMIN
    profile = getattr(user, "profile", None)
    if profile is None:
        return Role.STUDENT
    return Role(profile.role)


def has_capability(user, capability: str) -> bool:
    role = role_for(user)
    if role is None:
        return False
    return capability in ROLE_CAPABILITIES[role]


def authorize(user, capability: str) -> Role:
    """Return the caller's role or raise ``PermissionDenied``."""
    role = role_for(user)
    if role is None:
        raise exceptions.NotAuthenticated()
    if capability not in ROLE_CAPABILITIES[role]:
        raise exceptions.PermissionDenied("Access denied. Insufficient permissions.")
    return role


def is_admin(user) -> bool:
    return role_for(user) == Role.ADMIN


def ensure_owner(user, owner_id: int, message: str = "Access denied") -> None:
    if user.pk != owner_id and not is_admin(user):
        raise exceptions.PermissionDenied(message)


def ensure_assigned_verifier(user, verifier_id: int | None) -> None:
    if is_admin(user):
        return
    if verifier_id is None or user.pk != verifier_id:
        raise exceptions.PermissionDenied(
            "Access denied. This student is not assigned to you."
        )


def capability_required(capability: str) -> type[BasePermission]:
    """Build a DRF permission class checking a single capability."""

    class _CapabilityPermission(BasePermission):
        message = "Access denied. Insufficient permissions."

        def has_permission(self, request, view):
            return has_capability(request.user, capability)

    _CapabilityPermission.__name__ = f"Has_{capability}"
    return _CapabilityPermission
