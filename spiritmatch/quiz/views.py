import json

from django.conf import settings
from django.http import JsonResponse
from django.shortcuts import render
from django.views.decorators.http import require_GET, require_POST

from .decorators import one_request_at_a_time
from .quiz_data import ANALYSIS_MESSAGES, HISTORICAL_FIGURES, MAX_GUESSES
from .services import get_gateway, get_persister
from .utils import share_text
from .wizard import WizardController

SESSION_KEY = 'quiz_state'


def get_wizard(request):
    """Controller for this browser session, restored from the session store."""
    wizard = WizardController(
        gateway=get_gateway(),
        persister=get_persister(),
        total_questions=settings.QUIZ_QUESTION_COUNT,
        min_response_length=settings.QUIZ_MIN_RESPONSE_LENGTH,
        enable_guessing=settings.QUIZ_ENABLE_GUESSING,
        user_id=request.session.get('uid'),
    )
    return wizard.load(request.session.get(SESSION_KEY))


def save_wizard(request, wizard):
    request.session[SESSION_KEY] = wizard.to_dict()


def _payload(request):
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body or b'{}')
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
    return request.POST


def _state_response(request, wizard, ok=True, error=None):
    save_wizard(request, wizard)
    data = {'success': ok, 'state': wizard.state()}
    if not ok:
        data['error'] = error
    return JsonResponse(data, status=200 if ok else 400)


def index(request):
    wizard = get_wizard(request)
    context = {
        'state': wizard.state(),
        'historical_figures': HISTORICAL_FIGURES,
        'max_guesses': MAX_GUESSES,
        'analysis_messages': ANALYSIS_MESSAGES,
        'share_text': share_text(wizard.result, request.build_absolute_uri('/')),
    }
    return render(request, 'quiz/wizard.html', context)


@require_GET
def state(request):
    wizard = get_wizard(request)
    return JsonResponse({'success': True, 'state': wizard.state()})


@require_POST
@one_request_at_a_time
def start(request):
    wizard = get_wizard(request)
    ok = wizard.start()
    return _state_response(request, wizard, ok, 'The quiz has already started')


@require_POST
@one_request_at_a_time
def toggle_guess(request):
    wizard = get_wizard(request)
    figure = _payload(request).get('figure', '')
    ok = wizard.toggle_guess(figure)
    return _state_response(request, wizard, ok, f'Cannot select {figure or "that figure"}')


@require_POST
@one_request_at_a_time
def submit_guess(request):
    wizard = get_wizard(request)
    data = _payload(request)
    if hasattr(data, 'getlist'):
        guesses = data.getlist('guesses') or None
    else:
        guesses = data.get('guesses')
    ok = wizard.submit_guess(guesses)
    return _state_response(request, wizard, ok, 'Select at least one historical figure first')


@require_POST
@one_request_at_a_time
def save_response(request):
    wizard = get_wizard(request)
    response = _payload(request).get('response', '')
    ok = wizard.record_response(response)
    error = 'No question to answer'
    if not isinstance(response, str):
        error = 'The response must be text'
    return _state_response(request, wizard, ok, error)


@require_POST
@one_request_at_a_time
def next_question(request):
    wizard = get_wizard(request)
    response = _payload(request).get('response')
    ok = wizard.advance(response)
    error = None
    if response is not None and not isinstance(response, str):
        error = 'The response must be text'
    elif not ok:
        error = (
            f'Please write more than {wizard.min_response_length} characters '
            f'or pick one of the options to continue'
        )
    return _state_response(request, wizard, ok, error)


@require_POST
@one_request_at_a_time
def previous_question(request):
    wizard = get_wizard(request)
    ok = wizard.retreat()
    return _state_response(request, wizard, ok, 'Nothing to go back to')


@require_POST
@one_request_at_a_time
def analyze(request):
    wizard = get_wizard(request)
    ok = wizard.run_analysis()
    return _state_response(request, wizard, ok, 'Answer all questions before the analysis')


@require_POST
@one_request_at_a_time
def restart(request):
    wizard = get_wizard(request)
    wizard.restart()
    return _state_response(request, wizard)
