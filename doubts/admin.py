from django.contrib import admin

from .models import Doubt, DoubtReply


class DoubtReplyInline(admin.TabularInline):
    model = DoubtReply
    extra = 0
    readonly_fields = ("created_at",)
    autocomplete_fields = ("responder",)


@admin.register(Doubt)
class DoubtAdmin(admin.ModelAdmin):
    list_display = ("id", "course", "module", "student", "status", "created_at")
    list_filter = ("status", "course")
    search_fields = ("message", "student__username", "student__email")
    autocomplete_fields = ("student",)
    readonly_fields = ("created_at", "updated_at")
    inlines = [DoubtReplyInline]
