from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.http import HttpResponse
from django.urls import include, path
from django.views.generic import RedirectView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("accounts/", include("apps.accounts.urls")),
    # Healthcheck endpoint
    path("healthz", lambda _request: HttpResponse("ok")),
    path("", include("apps.cart.urls")),
    path("", include("apps.leads.urls")),
    path("", include("apps.payments.urls")),
    path("", include("apps.alerts.urls")),
    path("", include("apps.ordering.urls")),
    path("", RedirectView.as_view(pattern_name="ordering:orders_page", permanent=False)),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
