from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('academic-years/', include('apps.core.academic_years.urls')),
]
