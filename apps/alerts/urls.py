from django.urls import path

from . import views

app_name = "alerts"

urlpatterns = [
    path("dashboard/alerts/feed/", views.feed, name="feed"),
    path("dashboard/alerts/read/", views.mark_read, name="mark_read"),
    path("dashboard/alerts/settings/", views.alert_settings, name="settings"),
    path("dashboard/alerts/test/", views.test_ringtone, name="test_ringtone"),
]
