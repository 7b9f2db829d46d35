"""Main URL mapping configuration file.

Include other URLConfs from external apps using method `include()`.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('api/files/', include('blobdrive.apps.files.urls', namespace='files')),
    path('api/shares/', include('blobdrive.apps.shares.urls', namespace='shares')),
    path('admin/', admin.site.urls),
]
