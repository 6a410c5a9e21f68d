from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.core.exceptions import ServiceError, NotFound, error_response
from items.serializers import SharedItemSerializer
from items.services import items_service
from users.serializers import UserSummarySerializer
from .serializers import (
    LoopSerializer,
    PublicLoopSerializer,
    CreateLoopSerializer,
    LoopSettingsSerializer,
    InviteUserSerializer,
    OwnershipTransferSerializer,
    LoopInvitationSerializer,
    JoinRequestSerializer,
)
from .services import loop_service, invitation_service, join_request_service


def _paging(request, default_limit=20):
    try:
        skip = max(int(request.query_params.get("skip", 0)), 0)
    except (TypeError, ValueError):
        skip = 0
    try:
        limit = int(request.query_params.get("limit", default_limit))
    except (TypeError, ValueError):
        limit = default_limit
    if limit <= 0:
        limit = default_limit
    return skip, limit


# --- Loops ---
class LoopListCreateView(APIView):
    """
    GET  /api/loops         loops the caller belongs to (not archived)
    POST /api/loops         { "name", "description", "is_public" }
    """
    def get(self, request):
        loops = loop_service.get_user_loops(request.user.id)
        return Response(LoopSerializer(loops, many=True).data)

    def post(self, request):
        serializer = CreateLoopSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            loop = loop_service.create_loop(request.user, **serializer.validated_data)
        except ServiceError as e:
            return error_response(e)
        return Response(LoopSerializer(loop).data, status=status.HTTP_201_CREATED)


class PublicLoopsView(APIView):
    def get(self, request):
        skip, limit = _paging(request)
        loops = loop_service.get_public_loops(skip=skip, limit=limit)
        return Response(PublicLoopSerializer(loops, many=True).data)


class PublicLoopSearchView(APIView):
    def get(self, request):
        query = (request.query_params.get("q") or "").strip()
        if not query:
            return Response({"error": "Search query is required"}, status=status.HTTP_400_BAD_REQUEST)
        skip, limit = _paging(request)
        loops = loop_service.search_public_loops(query, skip=skip, limit=limit)
        return Response(PublicLoopSerializer(loops, many=True).data)


class ArchivedLoopsView(APIView):
    def get(self, request):
        loops = loop_service.get_archived_loops(request.user.id)
        return Response(LoopSerializer(loops, many=True).data)


class LoopDetailView(APIView):
    """
    GET    /api/loops/<id>  members only
    DELETE /api/loops/<id>  owner only
    """
    def get(self, request, loop_id):
        try:
            loop = loop_service.get_member_loop(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(LoopSerializer(loop).data)

    def delete(self, request, loop_id):
        try:
            loop_service.delete_loop(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class LoopMembersView(APIView):
    def get(self, request, loop_id):
        try:
            loop_service.get_member_loop(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        members = loop_service.get_loop_members(loop_id)
        return Response(UserSummarySerializer(members, many=True).data)


class LoopItemsView(APIView):
    """
    GET /api/loops/<id>/items?search=drill
    """
    def get(self, request, loop_id):
        try:
            loop = loop_service.get_member_loop(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        items = items_service.get_items_by_loop(loop, search=request.query_params.get("search"))
        return Response(SharedItemSerializer(items, many=True).data)


class RemoveMemberView(APIView):
    def delete(self, request, loop_id, member_id):
        try:
            loop_service.remove_member(loop_id, member_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class LeaveLoopView(APIView):
    def post(self, request, loop_id):
        try:
            loop_service.leave_loop(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response({"message": "You have left the loop"})


# --- Settings / archive ---
class LoopSettingsView(APIView):
    def get(self, request, loop_id):
        try:
            loop = loop_service.get_member_loop(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(LoopSerializer(loop).data)

    def put(self, request, loop_id):
        serializer = LoopSettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            loop = loop_service.update_loop_settings(loop_id, request.user.id, **serializer.validated_data)
        except ServiceError as e:
            return error_response(e)
        return Response(LoopSerializer(loop).data)


class ArchiveLoopView(APIView):
    def post(self, request, loop_id):
        try:
            loop = loop_service.archive_loop(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(LoopSerializer(loop).data)


class RestoreLoopView(APIView):
    def post(self, request, loop_id):
        try:
            loop = loop_service.restore_loop(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(LoopSerializer(loop).data)


# --- Ownership transfer ---
class TransferOwnershipView(APIView):
    """
    POST /api/loops/<id>/transfer-ownership
    { "new_owner_id": 12 }
    """
    def post(self, request, loop_id):
        try:
            new_owner_id = int(request.data.get("new_owner_id"))
        except (TypeError, ValueError):
            return Response({"error": "new_owner_id is required"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            transfer = loop_service.initiate_ownership_transfer(loop_id, request.user.id, new_owner_id)
        except ServiceError as e:
            return error_response(e)
        return Response(OwnershipTransferSerializer(transfer).data, status=status.HTTP_201_CREATED)


class AcceptOwnershipTransferView(APIView):
    def post(self, request, loop_id):
        try:
            loop = loop_service.accept_ownership_transfer(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(LoopSerializer(loop).data)


class DeclineOwnershipTransferView(APIView):
    def post(self, request, loop_id):
        try:
            transfer = loop_service.decline_ownership_transfer(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(OwnershipTransferSerializer(transfer).data)


class CancelOwnershipTransferView(APIView):
    def post(self, request, loop_id):
        try:
            transfer = loop_service.cancel_ownership_transfer(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(OwnershipTransferSerializer(transfer).data)


class PendingOwnershipTransferView(APIView):
    def get(self, request, loop_id):
        try:
            loop_service.get_member_loop(loop_id, request.user.id)
            transfer = loop_service.get_pending_transfer(loop_id)
            if transfer is None:
                raise NotFound("No pending ownership transfer for this loop")
        except ServiceError as e:
            return error_response(e)
        return Response(OwnershipTransferSerializer(transfer).data)


# --- Invitations ---
class InviteByEmailView(APIView):
    def post(self, request, loop_id):
        email = request.data.get("email")
        try:
            invitation = invitation_service.create_email_invitation(loop_id, request.user, email)
        except ServiceError as e:
            return error_response(e)
        return Response(LoopInvitationSerializer(invitation).data, status=status.HTTP_201_CREATED)


class InviteUserView(APIView):
    def post(self, request, loop_id):
        serializer = InviteUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            invitation = invitation_service.create_user_invitation(
                loop_id, request.user, serializer.validated_data["user_id"]
            )
        except ServiceError as e:
            return error_response(e)
        return Response(LoopInvitationSerializer(invitation).data, status=status.HTTP_201_CREATED)


class PotentialInviteesView(APIView):
    def get(self, request, loop_id):
        try:
            loop_service.get_member_loop(loop_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        users = loop_service.get_potential_invitees(loop_id, request.user.id)
        return Response(UserSummarySerializer(users, many=True).data)


class PendingInvitationsView(APIView):
    def get(self, request):
        invitations = invitation_service.get_pending_invitations_for_user(request.user)
        return Response(LoopInvitationSerializer(invitations, many=True).data)


class AcceptInvitationView(APIView):
    """
    POST /api/loops/invitations/<token>/accept
    Works with or without a bearer token; see invitation_service.accept_invitation.
    """
    permission_classes = [AllowAny]

    def post(self, request, token):
        current_user = request.user if request.user.is_authenticated else None
        try:
            invitation = invitation_service.accept_invitation(token, current_user=current_user)
        except ServiceError as e:
            return error_response(e)
        if invitation is None:
            return Response({"error": "Invalid or expired invitation"}, status=status.HTTP_400_BAD_REQUEST)
        return Response(LoopInvitationSerializer(invitation).data)


class AcceptUserInvitationView(APIView):
    def post(self, request, invitation_id):
        try:
            invitation = invitation_service.accept_invitation_for_user(invitation_id, request.user)
        except ServiceError as e:
            return error_response(e)
        if invitation is None:
            return Response({"error": "Invitation is no longer pending"}, status=status.HTTP_400_BAD_REQUEST)
        return Response(LoopInvitationSerializer(invitation).data)


# --- Join requests ---
class LoopJoinRequestsView(APIView):
    """
    POST /api/loops/<id>/join-requests   { "message": "..." }
    GET  /api/loops/<id>/join-requests   pending requests, owner only
    """
    def post(self, request, loop_id):
        try:
            join_request = join_request_service.create_join_request(
                loop_id, request.user, request.data.get("message", "")
            )
        except ServiceError as e:
            return error_response(e)
        return Response(JoinRequestSerializer(join_request).data, status=status.HTTP_201_CREATED)

    def get(self, request, loop_id):
        try:
            loop_service.get_owned_loop(loop_id, request.user.id, action="view join requests")
        except ServiceError as e:
            return error_response(e)
        requests = join_request_service.get_pending_requests_for_loop(loop_id)
        return Response(JoinRequestSerializer(requests, many=True).data)


class ApproveJoinRequestView(APIView):
    def post(self, request, request_id):
        try:
            join_request = join_request_service.approve_join_request(request_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(JoinRequestSerializer(join_request).data)


class RejectJoinRequestView(APIView):
    def post(self, request, request_id):
        try:
            join_request = join_request_service.reject_join_request(request_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(JoinRequestSerializer(join_request).data)


class MyJoinRequestsView(APIView):
    def get(self, request):
        requests = join_request_service.get_user_join_requests(request.user.id)
        return Response(JoinRequestSerializer(requests, many=True).data)
