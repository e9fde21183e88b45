from django.urls import path

from . import views

app_name = "leads"

urlpatterns = [
    path("r/<slug:slug>/leads/", views.lead_capture, name="capture"),
]
