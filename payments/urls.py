from django.urls import path
from . import views
app_name = "payments"
urlpatterns = [
    path("token", views.pesapal_token_view, name="pesapal_token"),
    path("order", views.pesapal_order_view, name="pesapal_order"),
    path("status/<str:tracking_id>", views.pesapal_status_view, name="pesapal_status"),
]
