"""
URL configuration for the workshop project.

The public API lives under ``/api/``; the Django admin under ``/admin/``.
"""
import os
from django.contrib import admin
from django.urls import include, path
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include(('courses.urls', 'courses'), namespace='courses')),
    path('api/', include(('assessments.urls', 'assessments'), namespace='assessments')),
    path('api/', include(('certificates.urls', 'certificates'), namespace='certificates')),
    path('api/', include(('doubts.urls', 'doubts'), namespace='doubts')),
    path('api/', include(('accounts.urls', 'accounts'), namespace='accounts')),
]

# Serve rendered certificates locally during development when S3 is not configured
if settings.DEBUG and not os.environ.get("AWS_STORAGE_BUCKET_NAME"):
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
