"""
Project-wide error handlers – JSON bodies, no internal details.
"""
from django.http import JsonResponse


def handler404(request, exception=None):
    return JsonResponse({'error': 'Not found', 'code': 'not_found'}, status=404)


def handler500(request):
    return JsonResponse({'error': 'Internal server error', 'code': 'error'}, status=500)


def handler403(request, exception=None):
    return JsonResponse({'error': 'Forbidden', 'code': 'forbidden'}, status=403)


def handler400(request, exception=None):
    return JsonResponse({'error': 'Bad request', 'code': 'invalid'}, status=400)
