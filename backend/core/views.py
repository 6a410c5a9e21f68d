# backend/core/views.py

from django.http import JsonResponse


def home(request):
    return JsonResponse({"service": "LendingLoop API", "status": "ok"})
