"""URL routes of the shares app."""

from django.urls import path

from blobdrive.apps.shares import views

app_name = 'shares'

urlpatterns = [
    path('', views.create_share, name='create'),
    path('<str:share_id>/', views.resolve_share, name='resolve'),
]
