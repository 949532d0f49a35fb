from django.urls import path

from .views import (
    start_new_year,
    year_create,
    year_delete,
    year_history,
    year_update,
)

urlpatterns = [
    path('start-new/', start_new_year, name='academic_year_start_new'),
    path('history/', year_history, name='academic_year_history'),
    path('create/', year_create, name='academic_year_create'),
    path('update/', year_update, name='academic_year_update'),
    path('delete/', year_delete, name='academic_year_delete'),
]
