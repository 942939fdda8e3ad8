from django.contrib import admin

from .models import Course, CourseModule, Enrollment, Lesson


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "title",
        "status",
        "has_practical_session",
        "results_generated",
        "start_at",
        "end_at",
    )
    list_filter = ("status", "has_practical_session", "results_generated")
    search_fields = ("title", "code", "description")
    filter_horizontal = ("tutors", "verifiers")
    readonly_fields = ("created_at", "updated_at")


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = (
        "student",
        "course",
        "verifier",
        "status",
        "theory_score",
        "practical_score",
        "final_score",
        "enrolled_at",
    )
    list_filter = ("status", "course")
    search_fields = ("student__username", "student__email", "course__title", "course__code")
    autocomplete_fields = ("student", "course", "verifier")
    readonly_fields = (
        "enrolled_at",
        "last_access_at",
        "theory_score",
        "practical_score",
        "final_score",
    )


class CourseModuleInline(admin.TabularInline):
    model = CourseModule
    extra = 0
    fields = ("order", "title", "description")
    ordering = ("order",)


@admin.register(Lesson)
class LessonAdmin(admin.ModelAdmin):
    list_display = ("title", "course", "order")
    list_filter = ("course",)
    search_fields = ("title", "course__title")
    inlines = (CourseModuleInline,)


@admin.register(CourseModule)
class CourseModuleAdmin(admin.ModelAdmin):
    list_display = ("title", "course", "lesson", "order")
    list_filter = ("course",)
    search_fields = ("title", "course__title")
    autocomplete_fields = ("course", "lesson")
