from django.urls import path
from . import views
app_name = "payments"
urlpatterns = [
    path("initiate", views.initiate_payment_view, name="initiate"),
    path("checkout/<str:order_id>", views.checkout_view, name="checkout"),
    path("payu/callback", views.payu_callback_view, name="payu_callback"),
    path("verify", views.verify_payment_view, name="verify"),
    path("success", views.payment_success_view, name="success"),
    path("failure", views.payment_failure_view, name="failure"),
]
