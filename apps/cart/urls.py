from django.urls import path

from . import views

app_name = "cart"

urlpatterns = [
    path("r/<slug:slug>/cart/", views.cart_sidebar, name="sidebar"),
    path("r/<slug:slug>/cart/state/", views.cart_state, name="state"),
    path("r/<slug:slug>/cart/add/", views.cart_add, name="add"),
    path("r/<slug:slug>/cart/update/", views.cart_update, name="update"),
    path("r/<slug:slug>/cart/remove/", views.cart_remove, name="remove"),
    path("r/<slug:slug>/cart/reset/", views.cart_reset, name="reset"),
]
