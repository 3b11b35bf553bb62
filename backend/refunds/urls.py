from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import DepositRefundViewSet

router = SimpleRouter()
router.register(r'refunds', DepositRefundViewSet, basename='refund')

urlpatterns = [
    path('', include(router.urls)),
]
