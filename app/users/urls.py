"""
URL mappings for the user and account API.
"""

from django.urls import path, include

from rest_framework.routers import DefaultRouter

from users import views

router = DefaultRouter()
router.register("accounts", views.AccountViewSet, basename="account")

app_name = "users"

urlpatterns = [
    path("users/create/", views.CreateUserView.as_view(), name="create"),
    path("users/token/", views.CreateTokenView.as_view(), name="token"),
    path("users/me/", views.ManageUserView.as_view(), name="me"),
    path("", include(router.urls)),
]
