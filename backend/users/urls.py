from django.urls import path, include
from rest_framework.routers import SimpleRouter
from rest_framework_simplejwt.views import TokenRefreshView
from .views import (
    PasswordLoginView,
    user_profile,
    BankAccountViewSet,
    NotificationViewSet,
)

router = SimpleRouter()
router.register(r'bank-accounts', BankAccountViewSet, basename='bank-account')
router.register(r'notifications', NotificationViewSet, basename='notification')

urlpatterns = [
    path('login/', PasswordLoginView.as_view(), name='password-login'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('user/profile/', user_profile, name='user-profile'),
    path('', include(router.urls)),
]
