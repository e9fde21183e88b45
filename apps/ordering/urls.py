from django.urls import path

from . import views_admin as admin_views
from . import views_public as public_views

app_name = "ordering"

urlpatterns = [
    # Public menu and checkout
    path("r/<slug:slug>/", public_views.menu_home, name="menu_home"),
    path("r/<slug:slug>/checkout/", public_views.checkout_submit, name="checkout_submit"),
    path("r/<slug:slug>/waiter/", public_views.waiter_call, name="waiter_call"),
    # Customer order page (opaque token, never the primary key)
    path("o/<str:token>/", public_views.order_status, name="order_status"),
    path("o/<str:token>/lookup/", public_views.order_lookup, name="order_lookup"),
    path("o/<str:token>/pay/", public_views.retry_payment, name="retry_payment"),
    path("o/<str:token>/paid/", public_views.report_paid, name="report_paid"),
    path("o/<str:token>/mpesa-status/", public_views.mpesa_status, name="mpesa_status"),
    # Staff
    path("dashboard/orders/", admin_views.orders_page, name="orders_page"),
    path("dashboard/orders/<uuid:order_id>/status/", admin_views.update_order_status, name="update_order_status"),
    path("dashboard/orders/<uuid:order_id>/paid/", admin_views.mark_paid, name="mark_paid"),
    path("dashboard/orders/<uuid:order_id>/table/", admin_views.update_table_number, name="update_table_number"),
    path("dashboard/waiter-calls/<uuid:call_id>/", admin_views.waiter_call_update, name="waiter_call_update"),
]
