from django.urls import path
from .views import (
    PriorAuthRequestDetailView,
    PriorAuthRequestListView,
    PriorAuthStatusView,
    PriorAuthSubmitView,
)

urlpatterns = [
    path('prior-auth-requests/', PriorAuthRequestListView.as_view(), name='pa-list'),
    path('prior-auth-requests/<uuid:pa_id>/', PriorAuthRequestDetailView.as_view(), name='pa-detail'),
    path('prior-auth-requests/<uuid:pa_id>/submit', PriorAuthSubmitView.as_view(), name='pa-submit'),
    path('prior-auth-requests/<uuid:pa_id>/status', PriorAuthStatusView.as_view(), name='pa-status'),
]
