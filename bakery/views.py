from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET


@require_GET
def health_view(request):
    return JsonResponse({"status": "ok", "timestamp": timezone.now().isoformat()})


def error_404_view(request, exception):
    return JsonResponse({"error": "Not Found", "path": request.path}, status=404)


def error_500_view(request):
    return JsonResponse({"error": "Internal Server Error", "message": "Something went wrong"}, status=500)
