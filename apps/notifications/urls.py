# apps/notifications/urls.py
from django.urls import path
from .views import my_notifications

app_name = 'notifications'
urlpatterns = [
    path('', my_notifications, name='my_notifications'),
]
