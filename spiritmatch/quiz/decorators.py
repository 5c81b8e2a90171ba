from functools import wraps

from django.conf import settings
from django.core.cache import cache
from django.http import JsonResponse


def session_lock_key(session_key):
    return f'quiz_session_lock_{session_key}'


def one_request_at_a_time(view_func):
    """
    Decorator allowing a single state-changing quiz request per session.

    Usage:
        @one_request_at_a_time
        def next_question(request):
            ...

    A second request arriving while the first still holds the lock gets a
    409 response, so a slow generation call can never save stale wizard
    state over a restart or edit made in another tab.
    """
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not request.session.session_key:
            request.session.save()
        lock_key = session_lock_key(request.session.session_key)
        # Released explicitly; the timeout only covers a crashed worker
        lock_timeout = int(settings.GEMINI_TIMEOUT * 2) + 5

        if not cache.add(lock_key, True, lock_timeout):
            return JsonResponse({
                'success': False,
                'error': 'Another quiz request is still in progress'
            }, status=409)

        try:
            response = view_func(request, *args, **kwargs)
            # The session middleware saves after the lock is gone; write now
            if request.session.modified:
                request.session.save()
            return response
        finally:
            cache.delete(lock_key)
    return _wrapped_view
