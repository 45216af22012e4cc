from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .api import TeamMemberViewSet, TicketViewSet

router = DefaultRouter()
router.register(r'tickets', TicketViewSet, basename='ticket')
router.register(r'team-members', TeamMemberViewSet, basename='team-member')

urlpatterns = [
    path('', include(router.urls)),
]
