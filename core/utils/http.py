"""
JSON API helpers shared by the creator and field APIs.
"""
import functools
import json
import logging

from django.http import JsonResponse
from django.utils.dateparse import parse_date

from core.exceptions import SchedulingError, ValidationError

logger = logging.getLogger(__name__)


def parse_json_body(request):
    """Safely parse JSON request body. Returns (data, error_response)."""
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, ValueError):
        return None, JsonResponse({'error': 'Invalid JSON body', 'code': 'invalid'}, status=400)
    if not isinstance(data, dict):
        return None, JsonResponse({'error': 'JSON body must be an object', 'code': 'invalid'}, status=400)
    return data, None


def error_response(exc):
    return JsonResponse({'error': exc.message, 'code': exc.code}, status=exc.status_code)


def api_view_errors(view):
    """Turn scheduling errors raised by a view into JSON error responses."""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except SchedulingError as exc:
            logger.info(
                '%s %s rejected (%s): %s', request.method, request.path, exc.code, exc.message,
            )
            return error_response(exc)

    return wrapper


def form_error_message(form):
    """Flatten Django form errors into one readable sentence."""
    parts = []
    for field, errors in form.errors.items():
        label = 'payload' if field == '__all__' else field
        parts.append(f'{label}: {" ".join(str(e) for e in errors)}')
    return '; '.join(parts)


def validated(form):
    """Return cleaned_data or raise ValidationError with the form's errors."""
    if not form.is_valid():
        raise ValidationError(form_error_message(form))
    return form.cleaned_data


def int_param(request, name, required=False):
    raw = request.GET.get(name, '').strip()
    if not raw:
        if required:
            raise ValidationError(f'Query parameter "{name}" is required.')
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f'Query parameter "{name}" must be an integer.')


def date_param(request, name):
    raw = request.GET.get(name, '').strip()
    if not raw:
        return None
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise ValidationError(f'Query parameter "{name}" must be a date (YYYY-MM-DD).')
    return value
