"""
The quiz wizard: a linear flow from the landing page through an optional
guess screen and N generated questions to the analysis and results.

The controller holds all session state and serialises it to a plain dict
so views can keep one instance per browser session.
"""
import logging

from .models import AnalysisResult, Question
from .quiz_data import HISTORICAL_FIGURES, MAX_GUESSES

logger = logging.getLogger(__name__)


class Step:
    LANDING = 'landing'
    GUESSING = 'guessing'
    QUESTIONING = 'questioning'
    ANALYZING = 'analyzing'
    RESULTS = 'results'

    ALL = (LANDING, GUESSING, QUESTIONING, ANALYZING, RESULTS)


def response_is_sufficient(question, response, min_length=10):
    """
    Minimum-content guard for advancing past a question.
    A selected option always passes; free text must be longer than min_length.
    """
    if not isinstance(response, str):
        return False
    text = response.strip()
    if not text:
        return False
    if question is not None and text in question.options:
        return True
    return len(text) > min_length


def normalize_guesses(guesses):
    """
    Drop blanks, repeats and non-string entries, keep order, cap at MAX_GUESSES.
    A bare string counts as a single guess.
    """
    if isinstance(guesses, str):
        guesses = [guesses]
    elif not isinstance(guesses, (list, tuple)):
        return []
    selected = []
    for name in guesses:
        if not isinstance(name, str):
            continue
        name = name.strip()
        if name and name not in selected:
            selected.append(name)
    return selected[:MAX_GUESSES]


class WizardController:
    def __init__(self, gateway, persister, total_questions=7, min_response_length=10,
                 enable_guessing=True, user_id=None):
        self.gateway = gateway
        self.persister = persister
        self.total_questions = total_questions
        self.min_response_length = min_response_length
        self.enable_guessing = enable_guessing
        self.user_id = user_id
        # True only while this instance waits on the gateway. Not persisted;
        # concurrent requests are kept apart by the per-session view lock.
        self.pending = False
        self.reset()

    def reset(self):
        self.step = Step.LANDING
        self.guesses = []
        self.questions = []
        self.responses = []
        self.question_index = 0
        self.result = None
        self.used_fallback = False

    # --- Read-only views of the state ---

    @property
    def current_question(self):
        if self.step != Step.QUESTIONING or self.question_index >= len(self.questions):
            return None
        return self.questions[self.question_index]

    @property
    def current_response(self):
        if self.question_index < len(self.responses):
            return self.responses[self.question_index]
        return ''

    @property
    def is_last_question(self):
        return self.question_index == self.total_questions - 1

    @property
    def progress(self):
        if self.step == Step.QUESTIONING:
            return round((self.question_index + 1) * 100 / self.total_questions)
        if self.step in (Step.ANALYZING, Step.RESULTS):
            return 100
        return 0

    @property
    def can_advance(self):
        return (
            self.step == Step.QUESTIONING
            and not self.pending
            and response_is_sufficient(self.current_question, self.current_response,
                                       self.min_response_length)
        )

    @property
    def guess_badges(self):
        """Selection badge number (1..k) for each guessed figure."""
        return {name: i for i, name in enumerate(self.guesses, start=1)}

    @property
    def guess_matched(self):
        if not self.result:
            return False
        character = self.result.character.lower()
        return any(g.lower() in character or character in g.lower() for g in self.guesses)

    def answered_pairs(self):
        """(question text, response) for every non-blank response, in order."""
        pairs = []
        for question, response in zip(self.questions, self.responses):
            if response and response.strip():
                pairs.append((question.question, response.strip()))
        return pairs

    def filtered_responses(self):
        return [r for _, r in self.answered_pairs()]

    # --- Transitions ---

    def start(self):
        if self.step != Step.LANDING:
            return False
        if self.enable_guessing:
            self.step = Step.GUESSING
        else:
            self._enter_questioning()
        return True

    def toggle_guess(self, figure):
        """
        Select or deselect a catalogue figure on the guess screen.
        Selecting beyond MAX_GUESSES is rejected.
        """
        if self.step != Step.GUESSING or figure not in HISTORICAL_FIGURES:
            return False
        if figure in self.guesses:
            self.guesses.remove(figure)
            return True
        if len(self.guesses) >= MAX_GUESSES:
            return False
        self.guesses.append(figure)
        return True

    def submit_guess(self, guesses=None):
        """Leave the guess screen. At least one guess must be selected."""
        if self.step != Step.GUESSING:
            return False
        selected = self.guesses if guesses is None else normalize_guesses(guesses)
        if not selected:
            return False
        self.guesses = selected
        self._enter_questioning()
        return True

    def record_response(self, response):
        if self.step != Step.QUESTIONING or self.pending:
            return False
        if response is None:
            response = ''
        if not isinstance(response, str):
            return False
        self.responses[self.question_index] = response
        return True

    def advance(self, response=None):
        """
        Move past the current question. Blocked while a generation call is
        outstanding or while the current response fails the guard.
        """
        if self.step != Step.QUESTIONING or self.pending:
            return False
        if response is not None and not self.record_response(response):
            return False
        if not self.can_advance:
            return False

        if self.is_last_question:
            self.step = Step.ANALYZING
            return True

        self.question_index += 1
        if self.question_index >= len(self.questions):
            self._generate_question(self.question_index)
        return True

    def retreat(self):
        if self.pending:
            return False
        if self.step == Step.QUESTIONING:
            if self.question_index > 0:
                self.question_index -= 1
            else:
                self.step = Step.GUESSING if self.enable_guessing else Step.LANDING
            return True
        if self.step == Step.GUESSING:
            self.step = Step.LANDING
            return True
        return False

    def run_analysis(self):
        """Ask the gateway for the match and move on to the results."""
        if self.step != Step.ANALYZING or self.pending:
            return False
        self.pending = True
        try:
            outcome = self.gateway.request_analysis(self.filtered_responses())
        finally:
            self.pending = False
        if outcome.is_fallback:
            self.used_fallback = True
        return self.complete_analysis(outcome.payload)

    def complete_analysis(self, result):
        if self.step != Step.ANALYZING:
            return False
        self.result = result
        self.step = Step.RESULTS

        pairs = self.answered_pairs()
        try:
            self.persister.submit(
                [q for q, _ in pairs],
                [r for _, r in pairs],
                result,
                user_id=self.user_id,
            )
        except Exception as e:
            logger.error(f"Could not submit assessment for saving: {e}")
        return True

    def restart(self):
        self.reset()
        return True

    # --- Internals ---

    def _enter_questioning(self):
        self.step = Step.QUESTIONING
        self.question_index = 0
        if not self.questions:
            self._generate_question(0)

    def _generate_question(self, step_index):
        prior = [r.strip() for r in self.responses[:step_index] if r and r.strip()]
        self.pending = True
        try:
            outcome = self.gateway.request_question(step_index, prior)
        finally:
            self.pending = False
        if outcome.is_fallback:
            self.used_fallback = True
        self.questions.append(outcome.payload)
        self.responses.append('')

    # --- Session serialisation ---

    def to_dict(self):
        return {
            'step': self.step,
            'guesses': list(self.guesses),
            'questions': [q.to_dict() for q in self.questions],
            'responses': list(self.responses),
            'question_index': self.question_index,
            'result': self.result.to_dict() if self.result else None,
            'used_fallback': self.used_fallback,
        }

    def load(self, data):
        """Restore state saved by to_dict. Unknown or broken data starts fresh."""
        self.reset()
        if not data or data.get('step') not in Step.ALL:
            return self
        self.step = data['step']
        self.guesses = normalize_guesses(data.get('guesses'))
        self.questions = [Question.from_dict(q) for q in data.get('questions') or []]
        self.responses = [str(r or '') for r in data.get('responses') or []]
        # Keep the parallel lists aligned
        self.responses = (self.responses + [''] * len(self.questions))[:len(self.questions)]
        self.question_index = max(0, min(int(data.get('question_index') or 0),
                                         max(len(self.questions) - 1, 0)))
        if data.get('result'):
            self.result = AnalysisResult.from_dict(data['result'])
        self.used_fallback = bool(data.get('used_fallback'))
        if self.step == Step.QUESTIONING and not self.questions:
            self.step = Step.LANDING
        if self.step == Step.RESULTS and self.result is None:
            self.step = Step.LANDING
        return self

    def state(self):
        """Snapshot for templates and JSON responses."""
        question = self.current_question
        return {
            'step': self.step,
            'total_questions': self.total_questions,
            'question_number': self.question_index + 1 if question else None,
            'question': question.to_dict() if question else None,
            'response': self.current_response if question else '',
            'progress': self.progress,
            'is_last_question': self.is_last_question if question else False,
            'can_advance': self.can_advance,
            'min_response_length': self.min_response_length,
            'guesses': list(self.guesses),
            'guess_badges': self.guess_badges,
            'result': self.result.to_dict() if self.result else None,
            'guess_matched': self.guess_matched,
        }
