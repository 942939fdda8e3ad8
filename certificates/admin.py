from django.contrib import admin

from .models import Certificate


@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):
    list_display = (
        "certificate_number",
        "student",
        "course",
        "grade",
        "total_score",
        "status",
        "issue_date",
    )
    list_filter = ("status", "grade", "course")
    search_fields = ("certificate_number", "verification_hash", "student__username", "student__email")
    readonly_fields = (
        "enrollment",
        "student",
        "course",
        "certificate_number",
        "verification_hash",
        "theory_score",
        "practical_score",
        "total_score",
        "grade",
        "issue_date",
        "issued_by",
        "revoked_at",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
