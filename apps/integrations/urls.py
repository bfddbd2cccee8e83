from django.urls import path

from . import views

app_name = "integrations"

urlpatterns = [
    path("paytr/callback/", views.PaytrCallbackView.as_view(), name="paytr_callback"),
]
