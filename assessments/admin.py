from django.contrib import admin

from .models import Assignment, Question, Submission, SubmissionAnswer


class QuestionInline(admin.StackedInline):
    model = Question
    extra = 0
    fields = (
        "position",
        "q_type",
        "prompt",
        "options",
        "correct_option_index",
        "reference_answer",
        "max_marks",
    )
    ordering = ("position",)


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "course",
        "module",
        "type",
        "time_limit_minutes",
        "max_tab_switches",
        "max_score",
    )
    list_filter = ("type", "course")
    search_fields = ("title", "course__title", "course__code")
    autocomplete_fields = ("course",)
    readonly_fields = ("created_at", "updated_at")
    inlines = (QuestionInline,)


class SubmissionAnswerInline(admin.TabularInline):
    model = SubmissionAnswer
    extra = 0
    readonly_fields = ("question_id", "selected_option_index", "answer_text", "code_url")
    can_delete = False


@admin.register(Submission)
class SubmissionAdmin(admin.ModelAdmin):
    list_display = (
        "student",
        "assignment",
        "status",
        "total_score",
        "tab_switch_count",
        "time_exceeded",
        "cheating_suspected",
        "submitted_at",
    )
    list_filter = ("status", "cheating_suspected", "course")
    search_fields = ("student__username", "student__email", "assignment__title")
    readonly_fields = (
        "started_at",
        "submitted_at",
        "auto_score",
        "tab_switch_count",
        "time_exceeded",
        "cheating_suspected",
        "evaluated_by",
        "evaluated_at",
        "created_at",
        "updated_at",
    )
    inlines = (SubmissionAnswerInline,)

    def has_delete_permission(self, request, obj=None):
        return False
