from django.urls import path
from .views import notices_list_create, notice_detail, notice_stats

app_name = 'notices'
urlpatterns = [
    path('', notices_list_create, name='list_create'),
    path('stats/', notice_stats, name='stats'),
    path('<str:notice_id>/', notice_detail, name='detail'),
]
