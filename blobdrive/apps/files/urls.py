"""URL routes of the files app."""

from django.urls import path

from blobdrive.apps.files import views

app_name = 'files'

urlpatterns = [
    path('', views.list_files, name='list'),
    path('upload/', views.upload, name='upload'),
    path('download/', views.download, name='download'),
    path('folders/', views.create_folder, name='create-folder'),
    path('delete/', views.soft_delete, name='delete'),
    path('restore/', views.restore, name='restore'),
    path('permanent-delete/', views.permanent_delete, name='permanent-delete'),
    path('rename/', views.rename, name='rename'),
    path('copy/', views.copy, name='copy'),
    path('move/', views.move, name='move'),
    path('tags/', views.update_tags, name='tags'),
    path('search/', views.search, name='search'),
    path('recycle-bin/', views.recycle_bin, name='recycle-bin'),
    path('quota/', views.quota, name='quota'),
]
