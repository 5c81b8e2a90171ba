import json
import logging
import threading

import requests
from django.conf import settings

from core.services import db
from .exceptions import GenerationFailure, PersistenceFailure
from .models import AnalysisResult, GenerationOutcome, PersistOutcome, Question
from .prompts import build_analysis_prompt, build_question_prompt
from .quiz_data import FALLBACK_ANALYSIS, FALLBACK_QUESTION

logger = logging.getLogger(__name__)

QUESTION_GENERATION_CONFIG = {'temperature': 0.9, 'topK': 40, 'topP': 0.95}
ANALYSIS_GENERATION_CONFIG = {'temperature': 0.8, 'topK': 40, 'topP': 0.9}


def extract_json_object(text):
    """
    Parse the JSON object embedded in free-form model output.

    Only the substring from the first '{' to the last '}' is parsed, which
    drops surrounding prose and markdown fences.
    """
    if not text:
        raise GenerationFailure("Empty model output")

    start = text.find('{')
    end = text.rfind('}')
    if start == -1 or end < start:
        raise GenerationFailure("No JSON object in model output")

    try:
        data = json.loads(text[start:end + 1])
    except ValueError as e:
        raise GenerationFailure(f"Invalid JSON in model output: {e}")

    if not isinstance(data, dict):
        raise GenerationFailure("Model output JSON is not an object")
    return data


def fallback_question(step_index):
    return Question.from_dict(FALLBACK_QUESTION, index=step_index + 1)


def fallback_analysis():
    return AnalysisResult.from_dict(FALLBACK_ANALYSIS)


class GenerationGateway:
    """
    Sends quiz prompts to the Gemini generateContent endpoint.

    Every public call returns a usable payload: failures are logged and
    replaced with the hardcoded fallback question or analysis.
    """

    def __init__(self, api_key, model='gemini-2.0-flash',
                 api_url='https://generativelanguage.googleapis.com/v1beta/models',
                 timeout=15, total_questions=7, session=None):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.total_questions = total_questions
        self.http = session or requests

    @property
    def endpoint(self):
        return f"{self.api_url}/{self.model}:generateContent"

    def call_model(self, prompt, generation_config):
        """
        POST one prompt and return the text of the first candidate.
        Raises GenerationFailure on any transport or envelope problem.
        """
        if not self.api_key:
            raise GenerationFailure("GEMINI_API_KEY is not configured")

        body = {
            'contents': [{'parts': [{'text': prompt}]}],
            'generationConfig': generation_config,
        }

        try:
            response = self.http.post(
                self.endpoint,
                params={'key': self.api_key},
                headers={'Content-Type': 'application/json'},
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GenerationFailure(f"Gemini request failed: {e}")

        if not 200 <= response.status_code < 300:
            logger.error(f"Gemini API error: status {response.status_code}")
            logger.error(f"Response body: {response.text[:500]}")
            raise GenerationFailure(f"Gemini API error: {response.status_code}",
                                    status_code=response.status_code)

        try:
            data = response.json()
            text = data['candidates'][0]['content']['parts'][0]['text']
        except (ValueError, KeyError, IndexError, TypeError):
            raise GenerationFailure("No response text from Gemini API")

        if not text:
            raise GenerationFailure("No response text from Gemini API")
        return text

    def _convert(self, factory, payload, **kwargs):
        try:
            return factory(payload, **kwargs)
        except (TypeError, ValueError, AttributeError, OverflowError) as e:
            raise GenerationFailure(f"Unusable model payload: {e}")

    def request_question(self, step_index, prior_responses):
        """Generate the question for zero-based ``step_index``."""
        prompt = build_question_prompt(step_index, prior_responses, total=self.total_questions)
        try:
            payload = extract_json_object(self.call_model(prompt, QUESTION_GENERATION_CONFIG))
            question = self._convert(Question.from_dict, payload, index=step_index + 1)
            if not question.question:
                raise GenerationFailure("Question payload has no 'question' field")
            return GenerationOutcome.success(question)
        except GenerationFailure as e:
            logger.warning(f"Question {step_index + 1} generation failed, using fallback: {e}")
            return GenerationOutcome.fallback(fallback_question(step_index), e)

    def request_analysis(self, responses):
        prompt = build_analysis_prompt(responses)
        try:
            payload = extract_json_object(self.call_model(prompt, ANALYSIS_GENERATION_CONFIG))
            result = self._convert(AnalysisResult.from_dict, payload)
            if not result.character:
                raise GenerationFailure("Analysis payload has no 'character' field")
            return GenerationOutcome.success(result)
        except GenerationFailure as e:
            logger.warning(f"Analysis generation failed, using fallback: {e}")
            return GenerationOutcome.fallback(fallback_analysis(), e)

    def next_question(self, step_index, prior_responses):
        return self.request_question(step_index, prior_responses).payload

    def analyze(self, responses):
        return self.request_analysis(responses).payload


class ResultPersister:
    """
    Writes finished assessments to Firestore.

    ``submit`` is fire-and-forget: the caller never waits on or inspects the
    outcome, and failures are only logged.
    """

    def __init__(self, store=None, background=True):
        self.store = store or db
        self.background = background

    def build_record(self, questions, responses, result, user_id=None):
        result_data = result.to_dict() if hasattr(result, 'to_dict') else dict(result)
        return {
            'questions': list(questions),
            'responses': list(responses),
            'questions_and_responses': [
                {'question': q, 'response': r} for q, r in zip(questions, responses)
            ],
            'result': result_data,
            'character_result': result_data.get('character', ''),
            'user_id': user_id,
        }

    def save(self, questions, responses, result, user_id=None):
        record = self.build_record(questions, responses, result, user_id=user_id)
        try:
            record_id = self.store.save_assessment(record)
        except Exception as e:
            failure = PersistenceFailure(f"Failed to save assessment: {e}")
            logger.error(str(failure))
            return PersistOutcome(False, error=str(failure))

        logger.info(f"Assessment saved: {record_id}")
        return PersistOutcome(True, record_id=record_id)

    def submit(self, questions, responses, result, user_id=None):
        """Save without blocking the caller. Returns the worker thread, if any."""
        if not self.background:
            self.save(questions, responses, result, user_id=user_id)
            return None

        t = threading.Thread(target=self.save, args=(questions, responses, result, user_id))
        t.daemon = True
        t.start()
        return t


def get_gateway():
    return GenerationGateway(
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        api_url=settings.GEMINI_API_URL,
        timeout=settings.GEMINI_TIMEOUT,
        total_questions=settings.QUIZ_QUESTION_COUNT,
    )


def get_persister():
    return ResultPersister(background=settings.QUIZ_PERSIST_IN_BACKGROUND)
