"""
Small helpers shared by the JSON endpoints.
"""
import json
from functools import wraps

from django.core.exceptions import ValidationError
from django.http import JsonResponse

from .permissions import is_admin


def error_response(message, status=400):
    return JsonResponse({'success': False, 'error': message}, status=status)


def validation_message(error):
    """First readable message out of a ValidationError."""
    return error.messages[0] if error.messages else 'Invalid request'


def json_body(request):
    """The request's JSON object. Form posts are accepted too."""
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body or b'{}')
        except ValueError:
            raise ValidationError("Invalid JSON body")
        if not isinstance(data, dict):
            raise ValidationError("Expected a JSON object")
        return data
    return request.POST.dict()


def form_data(data):
    """Turn a JSON payload into something a Django form can clean (JSON fields as strings)."""
    return {
        key: json.dumps(value) if isinstance(value, (dict, list)) else value
        for key, value in data.items()
    }


def api_login_required(view_func):
    """Like login_required, but answers 401 JSON instead of redirecting."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return error_response('Unauthorized', status=401)
        return view_func(request, *args, **kwargs)
    return wrapper


def api_admin_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return error_response('Unauthorized', status=401)
        if not is_admin(request.user):
            return error_response('Forbidden', status=403)
        return view_func(request, *args, **kwargs)
    return wrapper
