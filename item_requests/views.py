from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.core.exceptions import ServiceError, error_response
from .filters import ItemRequestFilter
from .serializers import ItemRequestSerializer, CreateItemRequestSerializer
from .services import item_request_service


class ItemRequestCreateView(APIView):
    """
    POST /api/itemrequests
    { "item_id": 3, "message": "...", "expected_return_date": "2025-01-31" }
    """
    def post(self, request):
        serializer = CreateItemRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            item_request = item_request_service.create_request(
                requester=request.user, **serializer.validated_data
            )
        except ServiceError as e:
            return error_response(e)
        return Response(ItemRequestSerializer(item_request).data, status=status.HTTP_201_CREATED)


class MyRequestsView(APIView):
    """
    GET /api/itemrequests/my-requests?status=Approved&item=3
    """
    def get(self, request):
        filterset = ItemRequestFilter(
            request.query_params, queryset=item_request_service.requester_queryset(request.user.id)
        )
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        requests = filterset.qs
        return Response(ItemRequestSerializer(requests, many=True).data)


class PendingRequestsView(APIView):
    """
    GET /api/itemrequests/pending
    Pending requests for items the caller owns.
    """
    def get(self, request):
        requests = item_request_service.get_pending_requests_for_owner(request.user.id)
        return Response(ItemRequestSerializer(requests, many=True).data)


class ItemRequestsForItemView(APIView):
    def get(self, request, item_id):
        try:
            requests = item_request_service.get_requests_for_item(item_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(ItemRequestSerializer(requests, many=True).data)


class ItemRequestDetailView(APIView):
    def get(self, request, request_id):
        try:
            item_request = item_request_service.get_request_for_participant(request_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        return Response(ItemRequestSerializer(item_request).data)


class ItemRequestTransitionView(APIView):
    """
    PUT /api/itemrequests/<id>/<action>
    Subclasses name the service function that applies the transition.
    """
    transition = None

    def put(self, request, request_id):
        apply = getattr(item_request_service, self.transition)
        try:
            apply(request_id, request.user.id)
        except ServiceError as e:
            return error_response(e)
        # re-read so scores changed by the transition are reflected
        item_request = item_request_service.get_request(request_id)
        return Response(ItemRequestSerializer(item_request).data)


class ApproveRequestView(ItemRequestTransitionView):
    transition = "approve_request"


class RejectRequestView(ItemRequestTransitionView):
    transition = "reject_request"


class CancelRequestView(ItemRequestTransitionView):
    transition = "cancel_request"


class CompleteRequestView(ItemRequestTransitionView):
    transition = "complete_request"
