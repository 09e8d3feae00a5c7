from django.contrib import admin
from django.urls import include, path

from payments import views as payment_views
from . import views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/health", views.health_view, name="health"),
    path("api/pesapal/", include("payments.urls")),
    # PesaPal IPN target; registered with the gateway as https://<domain>/webhook
    path("webhook", payment_views.pesapal_webhook, name="pesapal_webhook"),
    path("webhook/", payment_views.pesapal_webhook),
]

handler404 = "bakery.views.error_404_view"
handler500 = "bakery.views.error_500_view"
