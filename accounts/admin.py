from django.contrib import admin

from .models import UserProfile, VerifierRequest


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "college", "class_year", "mobile")
    list_filter = ("role",)
    search_fields = ("user__username", "user__email", "college")
    autocomplete_fields = ("user",)
    readonly_fields = ("created_at", "updated_at")


@admin.register(VerifierRequest)
class VerifierRequestAdmin(admin.ModelAdmin):
    list_display = ("email", "name", "college", "status", "processed_by", "created_at")
    list_filter = ("status",)
    search_fields = ("email", "name", "college")
    readonly_fields = ("user", "processed_by", "processed_at", "created_at", "updated_at")
