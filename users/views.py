from django.shortcuts import get_object_or_404
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import User
from .serializers import ScoreHistoryEntrySerializer, BadgeAwardSerializer
from .services import score_service


class UserScoreView(APIView):
    """
    GET /api/users/<user_id>/score
    """
    def get(self, request, user_id):
        get_object_or_404(User, pk=user_id)
        return Response(score_service.get_user_score(user_id))


class ScoreHistoryView(APIView):
    """
    GET /api/users/<user_id>/score-history?limit=50
    Most recent entries first.
    """
    def get(self, request, user_id):
        try:
            limit = int(request.query_params.get("limit", 50))
        except (TypeError, ValueError):
            limit = 50
        if limit <= 0:
            limit = 50

        get_object_or_404(User, pk=user_id)
        history = score_service.get_score_history(user_id, limit=limit)
        return Response(ScoreHistoryEntrySerializer(history, many=True).data)


class UserBadgesView(APIView):
    def get(self, request, user_id):
        get_object_or_404(User, pk=user_id)
        badges = score_service.get_user_badges(user_id)
        return Response(BadgeAwardSerializer(badges, many=True).data)


class BadgeProgressView(APIView):
    def get(self, request, user_id):
        user = get_object_or_404(User, pk=user_id)
        return Response(score_service.get_all_badge_progress(user))
