from django.urls import path
from . import views

app_name = "item_requests"

urlpatterns = [
    path("", views.ItemRequestCreateView.as_view(), name="create"),
    path("my-requests", views.MyRequestsView.as_view(), name="my-requests"),
    path("pending", views.PendingRequestsView.as_view(), name="pending"),
    path("item/<int:item_id>", views.ItemRequestsForItemView.as_view(), name="for-item"),
    path("<int:request_id>", views.ItemRequestDetailView.as_view(), name="detail"),
    path("<int:request_id>/approve", views.ApproveRequestView.as_view(), name="approve"),
    path("<int:request_id>/reject", views.RejectRequestView.as_view(), name="reject"),
    path("<int:request_id>/cancel", views.CancelRequestView.as_view(), name="cancel"),
    path("<int:request_id>/complete", views.CompleteRequestView.as_view(), name="complete"),
]
