from django.urls import path
from . import views

app_name = 'notifications'

urlpatterns = [
    # POST   /api/notifications/push/               - Fan out a push to users' devices
    path('push/', views.PushNotificationView.as_view(), name='push'),

    # POST   /api/notifications/devices/            - Register device token
    # DELETE /api/notifications/devices/{token}/    - Remove device token
    path('devices/', views.DeviceTokenView.as_view(), name='devices'),
    path('devices/<str:token>/', views.DeviceTokenView.as_view(), name='device-detail'),
]
