"""
URL mappings for the orders app.
"""

from django.urls import path, include

from rest_framework.routers import DefaultRouter

from orders import views

router = DefaultRouter()
router.register("orders", views.OrderViewSet)

app_name = "orders"

urlpatterns = [
    path("", include(router.urls)),
]
