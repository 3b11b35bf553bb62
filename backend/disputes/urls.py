from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import ViolationViewSet, ResolutionViewSet

router = SimpleRouter()
router.register(r'violations', ViolationViewSet, basename='violation')
router.register(r'resolutions', ResolutionViewSet, basename='resolution')

urlpatterns = [
    path('', include(router.urls)),
]
