from django.urls import path

from .views import order_detail, orders_collection

urlpatterns = [
    path("orders/<str:order_id>", order_detail),
    path("orders", orders_collection),
]
