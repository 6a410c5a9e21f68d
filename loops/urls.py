from django.urls import path
from . import views

app_name = "loops"

urlpatterns = [
    path("", views.LoopListCreateView.as_view(), name="list-create"),
    path("public", views.PublicLoopsView.as_view(), name="public"),
    path("public/search", views.PublicLoopSearchView.as_view(), name="public-search"),
    path("archived", views.ArchivedLoopsView.as_view(), name="archived"),

    # Invitations
    path("invitations/pending", views.PendingInvitationsView.as_view(), name="pending-invitations"),
    path("invitations/<int:invitation_id>/accept-user", views.AcceptUserInvitationView.as_view(), name="accept-user-invitation"),
    path("invitations/<str:token>/accept", views.AcceptInvitationView.as_view(), name="accept-invitation"),

    # Join requests
    path("join-requests/my-requests", views.MyJoinRequestsView.as_view(), name="my-join-requests"),
    path("join-requests/<int:request_id>/approve", views.ApproveJoinRequestView.as_view(), name="approve-join-request"),
    path("join-requests/<int:request_id>/reject", views.RejectJoinRequestView.as_view(), name="reject-join-request"),

    # Single loop
    path("<int:loop_id>", views.LoopDetailView.as_view(), name="detail"),
    path("<int:loop_id>/members", views.LoopMembersView.as_view(), name="members"),
    path("<int:loop_id>/members/<int:member_id>", views.RemoveMemberView.as_view(), name="remove-member"),
    path("<int:loop_id>/leave", views.LeaveLoopView.as_view(), name="leave"),
    path("<int:loop_id>/items", views.LoopItemsView.as_view(), name="items"),
    path("<int:loop_id>/invite-email", views.InviteByEmailView.as_view(), name="invite-email"),
    path("<int:loop_id>/invite-user", views.InviteUserView.as_view(), name="invite-user"),
    path("<int:loop_id>/potential-invitees", views.PotentialInviteesView.as_view(), name="potential-invitees"),
    path("<int:loop_id>/settings", views.LoopSettingsView.as_view(), name="settings"),
    path("<int:loop_id>/archive", views.ArchiveLoopView.as_view(), name="archive"),
    path("<int:loop_id>/restore", views.RestoreLoopView.as_view(), name="restore"),
    path("<int:loop_id>/join-requests", views.LoopJoinRequestsView.as_view(), name="join-requests"),

    # Ownership transfer
    path("<int:loop_id>/transfer-ownership", views.TransferOwnershipView.as_view(), name="transfer-ownership"),
    path("<int:loop_id>/transfer-ownership/accept", views.AcceptOwnershipTransferView.as_view(), name="accept-transfer"),
    path("<int:loop_id>/transfer-ownership/decline", views.DeclineOwnershipTransferView.as_view(), name="decline-transfer"),
    path("<int:loop_id>/transfer-ownership/cancel", views.CancelOwnershipTransferView.as_view(), name="cancel-transfer"),
    path("<int:loop_id>/transfer-ownership/pending", views.PendingOwnershipTransferView.as_view(), name="pending-transfer"),
]
