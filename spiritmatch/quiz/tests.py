import json
from unittest.mock import MagicMock, patch

import requests
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from .decorators import session_lock_key
from .exceptions import GenerationFailure
from .models import AnalysisResult, GenerationOutcome, Question
from .prompts import QUESTION_CATEGORIES, build_analysis_prompt, build_question_prompt, category_for_step
from .quiz_data import FALLBACK_QUESTION_TEXT, HISTORICAL_FIGURES
from .services import GenerationGateway, ResultPersister, extract_json_object
from .utils import biography_paragraphs, share_text
from .wizard import Step, WizardController, normalize_guesses, response_is_sufficient


def long_answer(letter):
    return letter + ' because that is what I would honestly do'


class FakeGateway:
    """Returns numbered questions and a fixed analysis; records every call."""

    def __init__(self, options=None):
        self.question_calls = []
        self.analysis_calls = []
        self.options = options or []

    def request_question(self, step_index, prior_responses):
        self.question_calls.append((step_index, list(prior_responses)))
        return GenerationOutcome.success(Question(
            index=step_index + 1,
            title=f'Title {step_index + 1}',
            question=f'Question text {step_index + 1}?',
            options=self.options,
        ))

    def request_analysis(self, responses):
        self.analysis_calls.append(list(responses))
        return GenerationOutcome.success(AnalysisResult(
            character='Joan of Arc', match_percentage=91, description='Brave.',
        ))


def gemini_envelope(text):
    return {'candidates': [{'content': {'parts': [{'text': text}]}}]}


def http_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = json.dumps(body)
    return response


class PromptBuilderTests(SimpleTestCase):
    def test_category_rotation_wraps(self):
        k = len(QUESTION_CATEGORIES)
        self.assertEqual(category_for_step(0), QUESTION_CATEGORIES[0])
        self.assertEqual(category_for_step(k), QUESTION_CATEGORIES[0])
        self.assertEqual(category_for_step(k + 2), QUESTION_CATEGORIES[2])

    def test_successive_questions_target_different_categories(self):
        names = [category_for_step(i)['name'] for i in range(len(QUESTION_CATEGORIES))]
        self.assertEqual(len(set(names)), len(QUESTION_CATEGORIES))

    def test_first_question_prompt(self):
        prompt = build_question_prompt(0, [], total=7)
        self.assertIn('This is the first question.', prompt)
        self.assertIn('Generate question 1 of 7.', prompt)
        self.assertIn(QUESTION_CATEGORIES[0]['name'], prompt)
        self.assertIn('"question":', prompt)

    def test_question_prompt_embeds_transcript(self):
        prompt = build_question_prompt(2, ['I lead from the front', 'I share everything'], total=5)
        self.assertIn('Generate question 3 of 5.', prompt)
        self.assertIn('1. I lead from the front', prompt)
        self.assertIn('2. I share everything', prompt)
        self.assertIn(QUESTION_CATEGORIES[2]['name'], prompt)
        self.assertNotIn('This is the first question.', prompt)

    def test_prompts_are_deterministic(self):
        self.assertEqual(build_question_prompt(4, ['a', 'b']), build_question_prompt(4, ['a', 'b']))
        self.assertEqual(build_analysis_prompt(['x']), build_analysis_prompt(['x']))

    def test_analysis_prompt(self):
        prompt = build_analysis_prompt(['first answer', 'second answer'])
        self.assertIn('1. first answer', prompt)
        self.assertIn('2. second answer', prompt)
        self.assertIn('Marcus Aurelius', prompt)
        self.assertIn('"matchPercentage"', prompt)


class ExtractJsonTests(SimpleTestCase):
    def test_extracts_object_from_prose(self):
        text = 'Here is the result: {"character":"X","matchPercentage":90} Thanks!'
        self.assertEqual(extract_json_object(text), {'character': 'X', 'matchPercentage': 90})

    def test_extracts_object_from_markdown_fence(self):
        text = '```json\n{"question": "Why?", "title": "Motive"}\n```'
        self.assertEqual(extract_json_object(text)['question'], 'Why?')

    def test_nested_braces_use_last_closing_brace(self):
        text = 'ok {"traits": [{"title": "A"}]} done'
        self.assertEqual(extract_json_object(text)['traits'][0]['title'], 'A')

    def test_failures(self):
        for text in ['', 'no json here', '{"broken": ', '} backwards {']:
            with self.assertRaises(GenerationFailure):
                extract_json_object(text)


class GenerationGatewayTests(SimpleTestCase):
    def make_gateway(self, **kwargs):
        self.http = MagicMock()
        return GenerationGateway(api_key='test-key', session=self.http, **kwargs)

    def test_next_question_success(self):
        gateway = self.make_gateway()
        payload = {'title': 'The Flood', 'question': 'The dam is failing. What do you do?',
                   'placeholder': 'I would...', 'options': ['Evacuate', 'Repair', '', 'Wait', 'Pray', 'Run', 'Hide']}
        self.http.post.return_value = http_response(200, gemini_envelope(json.dumps(payload)))

        outcome = gateway.request_question(1, ['an earlier answer'])

        self.assertFalse(outcome.is_fallback)
        question = outcome.payload
        self.assertEqual(question.index, 2)
        self.assertEqual(question.title, 'The Flood')
        self.assertEqual(question.options, ['Evacuate', 'Repair', 'Wait', 'Pray', 'Run'])

        args, kwargs = self.http.post.call_args
        self.assertTrue(args[0].endswith('/gemini-2.0-flash:generateContent'))
        self.assertEqual(kwargs['params'], {'key': 'test-key'})
        self.assertEqual(kwargs['timeout'], 15)
        body = kwargs['json']
        self.assertIn('an earlier answer', body['contents'][0]['parts'][0]['text'])
        self.assertEqual(body['generationConfig'], {'temperature': 0.9, 'topK': 40, 'topP': 0.95})

    def test_network_failure_returns_fallback_question(self):
        gateway = self.make_gateway()
        self.http.post.side_effect = requests.ConnectionError('unreachable')

        question = gateway.next_question(0, [])

        self.assertEqual(question.question, FALLBACK_QUESTION_TEXT)
        self.assertEqual(question.index, 1)

    def test_timeout_returns_fallback_outcome(self):
        gateway = self.make_gateway(timeout=3)
        self.http.post.side_effect = requests.Timeout('slow')

        outcome = gateway.request_question(4, ['a'])

        self.assertTrue(outcome.is_fallback)
        self.assertIn('slow', outcome.error)
        self.assertEqual(outcome.payload.index, 5)
        self.assertEqual(self.http.post.call_args[1]['timeout'], 3)

    def test_non_2xx_returns_fallback(self):
        gateway = self.make_gateway()
        self.http.post.return_value = http_response(503, {'error': 'overloaded'})

        outcome = gateway.request_question(0, [])

        self.assertTrue(outcome.is_fallback)
        self.assertEqual(outcome.payload.question, FALLBACK_QUESTION_TEXT)

    def test_missing_question_field_returns_fallback(self):
        gateway = self.make_gateway()
        self.http.post.return_value = http_response(200, gemini_envelope('{"title": "No question"}'))

        outcome = gateway.request_question(0, [])

        self.assertTrue(outcome.is_fallback)

    def test_malformed_envelope_returns_fallback(self):
        gateway = self.make_gateway()
        self.http.post.return_value = http_response(200, {'candidates': []})

        self.assertTrue(gateway.request_question(0, []).is_fallback)

    def test_missing_api_key_never_calls_out(self):
        http = MagicMock()
        gateway = GenerationGateway(api_key='', session=http)

        outcome = gateway.request_analysis(['something'])

        self.assertTrue(outcome.is_fallback)
        http.post.assert_not_called()

    def test_analyze_extracts_json_from_prose(self):
        gateway = self.make_gateway()
        text = (
            'Here is the result: {"character":"X","matchPercentage":93,'
            '"shortDescription":"Someone","birthYear":"1412","deathYear":1431,'
            '"achievements":["One","Two"],"traits":[{"title":"Bold","description":"Very"}]} Thanks!'
        )
        self.http.post.return_value = http_response(200, gemini_envelope(text))

        outcome = gateway.request_analysis(['a', 'b'])

        self.assertFalse(outcome.is_fallback)
        result = outcome.payload
        self.assertEqual(result.character, 'X')
        self.assertEqual(result.match_percentage, 93)
        self.assertEqual(result.birth_year, 1412)
        self.assertEqual(result.traits, [{'title': 'Bold', 'description': 'Very'}])
        self.assertEqual(self.http.post.call_args[1]['json']['generationConfig']['temperature'], 0.8)

    def test_analysis_failure_returns_fallback_profile(self):
        gateway = self.make_gateway()
        self.http.post.return_value = http_response(200, gemini_envelope('I cannot help with that.'))

        result = gateway.analyze(['a'])

        self.assertEqual(result.character, 'Marcus Aurelius')
        self.assertEqual(result.match_percentage, 88)
        self.assertEqual(len(result.traits), 3)

    def test_overflowing_numbers_in_analysis_are_tolerated(self):
        gateway = self.make_gateway()
        text = '{"character": "X", "matchPercentage": 1e999, "birthYear": Infinity}'
        self.http.post.return_value = http_response(200, gemini_envelope(text))

        outcome = gateway.request_analysis(['a'])

        self.assertFalse(outcome.is_fallback)
        self.assertEqual(outcome.payload.character, 'X')
        self.assertEqual(outcome.payload.match_percentage, 0)
        self.assertIsNone(outcome.payload.birth_year)

    def test_unconvertible_analysis_payload_returns_fallback(self):
        gateway = self.make_gateway()
        text = json.dumps({'character': 'X', 'matchPercentage': 70, 'traits': 5})
        self.http.post.return_value = http_response(200, gemini_envelope(text))

        outcome = gateway.request_analysis(['a'])

        self.assertTrue(outcome.is_fallback)
        self.assertEqual(outcome.payload.character, 'Marcus Aurelius')
        self.assertIn('Unusable model payload', str(outcome.error))


class ResultPersisterTests(SimpleTestCase):
    def setUp(self):
        self.result = AnalysisResult(character='Confucius', match_percentage=80)

    def test_save_builds_aligned_record(self):
        store = MagicMock()
        store.save_assessment.return_value = 'doc123'
        persister = ResultPersister(store=store, background=False)

        outcome = persister.save(['Q1', 'Q2'], ['R1', 'R2'], self.result, user_id='uid1')

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.record_id, 'doc123')
        record = store.save_assessment.call_args[0][0]
        self.assertEqual(record['questions'], ['Q1', 'Q2'])
        self.assertEqual(record['responses'], ['R1', 'R2'])
        self.assertEqual(record['questions_and_responses'][1], {'question': 'Q2', 'response': 'R2'})
        self.assertEqual(record['character_result'], 'Confucius')
        self.assertEqual(record['result']['matchPercentage'], 80)
        self.assertEqual(record['user_id'], 'uid1')

    def test_save_failure_is_swallowed(self):
        store = MagicMock()
        store.save_assessment.side_effect = Exception('firestore down')
        persister = ResultPersister(store=store, background=False)

        with self.assertLogs('quiz.services', level='ERROR'):
            outcome = persister.save(['Q1'], ['R1'], self.result)

        self.assertFalse(outcome.ok)
        self.assertIn('firestore down', outcome.error)

    def test_submit_inline(self):
        store = MagicMock()
        persister = ResultPersister(store=store, background=False)

        self.assertIsNone(persister.submit(['Q1'], ['R1'], self.result))
        store.save_assessment.assert_called_once()

    def test_submit_in_background(self):
        store = MagicMock()
        persister = ResultPersister(store=store, background=True)

        thread = persister.submit(['Q1'], ['R1'], self.result)
        thread.join(timeout=5)

        store.save_assessment.assert_called_once()


class ResponseGuardTests(SimpleTestCase):
    def test_free_text_needs_more_than_min_length(self):
        question = Question(index=1, question='Why?')
        self.assertFalse(response_is_sufficient(question, '', 10))
        self.assertFalse(response_is_sufficient(question, '   ', 10))
        self.assertFalse(response_is_sufficient(question, '0123456789', 10))
        self.assertTrue(response_is_sufficient(question, '0123456789a', 10))

    def test_selected_option_passes(self):
        question = Question(index=1, question='Pick', options=['Yes', 'No'])
        self.assertTrue(response_is_sufficient(question, 'No', 10))

    def test_zero_min_length_means_non_empty(self):
        question = Question(index=1, question='Why?')
        self.assertTrue(response_is_sufficient(question, 'a', 0))
        self.assertFalse(response_is_sufficient(question, '', 0))

    def test_non_text_response_never_passes(self):
        question = Question(index=1, question='Why?')
        for value in (None, 42, ['a long enough answer'], {'a': 'b'}):
            self.assertFalse(response_is_sufficient(question, value, 0))


class WizardControllerTests(SimpleTestCase):
    def make_wizard(self, total=5, enable_guessing=False, **kwargs):
        self.gateway = FakeGateway()
        self.persister = MagicMock()
        return WizardController(self.gateway, self.persister, total_questions=total,
                                min_response_length=10, enable_guessing=enable_guessing, **kwargs)

    def test_start_without_guessing_generates_first_question(self):
        wizard = self.make_wizard()
        self.assertTrue(wizard.start())
        self.assertEqual(wizard.step, Step.QUESTIONING)
        self.assertEqual(wizard.current_question.index, 1)
        self.assertEqual(self.gateway.question_calls, [(0, [])])
        self.assertFalse(wizard.start())

    def test_start_with_guessing(self):
        wizard = self.make_wizard(enable_guessing=True)
        wizard.start()
        self.assertEqual(wizard.step, Step.GUESSING)
        self.assertEqual(self.gateway.question_calls, [])

    def test_advance_blocked_until_guard_passes_at_every_step(self):
        total = 5
        wizard = self.make_wizard(total=total)
        wizard.start()
        for i in range(total):
            self.assertEqual(wizard.question_index, i)
            self.assertFalse(wizard.advance(''))
            self.assertFalse(wizard.advance('too short'))
            self.assertEqual(wizard.question_index, i)
            self.assertEqual(wizard.step, Step.QUESTIONING)
            self.assertTrue(wizard.advance(long_answer(str(i))))
        self.assertEqual(wizard.step, Step.ANALYZING)

    def test_advance_blocked_while_generation_pending(self):
        wizard = self.make_wizard()
        wizard.start()
        wizard.record_response(long_answer('a'))
        wizard.pending = True
        self.assertFalse(wizard.advance())
        self.assertEqual(wizard.question_index, 0)

    def test_no_reentrant_advance_during_generation(self):
        wizard = self.make_wizard()
        attempts = []
        original = self.gateway.request_question

        def reentrant(step_index, prior):
            attempts.append(wizard.advance(long_answer('x')))
            return original(step_index, prior)

        self.gateway.request_question = reentrant
        wizard.start()
        wizard.advance(long_answer('a'))
        self.assertEqual(attempts, [False, False])
        self.assertEqual(wizard.question_index, 1)

    def test_next_question_receives_prior_responses(self):
        wizard = self.make_wizard()
        wizard.start()
        wizard.advance(long_answer('a'))
        wizard.advance(long_answer('b'))
        self.assertEqual(self.gateway.question_calls[2], (2, [long_answer('a'), long_answer('b')]))

    def test_retreat_keeps_questions_and_allows_editing(self):
        wizard = self.make_wizard()
        wizard.start()
        wizard.advance(long_answer('a'))
        self.assertTrue(wizard.retreat())
        self.assertEqual(wizard.question_index, 0)
        self.assertEqual(wizard.current_response, long_answer('a'))
        wizard.advance(long_answer('changed'))
        # Revisiting does not regenerate the question
        self.assertEqual(len(self.gateway.question_calls), 2)
        self.assertEqual(wizard.responses[0], long_answer('changed'))

    def test_retreat_from_first_question(self):
        wizard = self.make_wizard(enable_guessing=True)
        wizard.start()
        wizard.submit_guess(['Gandhi'])
        wizard.retreat()
        self.assertEqual(wizard.step, Step.GUESSING)
        wizard.retreat()
        self.assertEqual(wizard.step, Step.LANDING)

        plain = self.make_wizard(enable_guessing=False)
        plain.start()
        plain.retreat()
        self.assertEqual(plain.step, Step.LANDING)

    def test_filtered_lists_are_aligned(self):
        wizard = self.make_wizard(total=3)
        wizard.start()
        wizard.advance(long_answer('a'))
        wizard.advance(long_answer('b'))
        wizard.responses[1] = '   '
        pairs = wizard.answered_pairs()
        self.assertLessEqual(len(wizard.filtered_responses()), len(wizard.questions))
        self.assertEqual(pairs, [('Question text 1?', long_answer('a'))])

    def test_end_to_end_five_questions(self):
        wizard = self.make_wizard(total=5)
        answers = [long_answer(letter) for letter in 'abcde']

        wizard.start()
        self.assertEqual(wizard.step, Step.QUESTIONING)
        for answer in answers:
            self.assertTrue(wizard.advance(answer))
        self.assertEqual(wizard.step, Step.ANALYZING)
        self.assertEqual(wizard.filtered_responses(), answers)

        self.assertTrue(wizard.run_analysis())
        self.assertEqual(wizard.step, Step.RESULTS)
        self.assertIsNotNone(wizard.result)
        self.assertEqual(self.gateway.analysis_calls, [answers])

        self.persister.submit.assert_called_once()
        questions, responses, result = self.persister.submit.call_args[0]
        self.assertEqual(questions, [f'Question text {i}?' for i in range(1, 6)])
        self.assertEqual(responses, answers)
        self.assertEqual(result.character, 'Joan of Arc')

    def test_persistence_failure_does_not_block_results(self):
        wizard = self.make_wizard(total=1)
        self.persister.submit.side_effect = Exception('no thread for you')
        wizard.start()
        wizard.advance(long_answer('a'))
        self.assertTrue(wizard.run_analysis())
        self.assertEqual(wizard.step, Step.RESULTS)

    def test_complete_analysis_only_from_analyzing(self):
        wizard = self.make_wizard()
        self.assertFalse(wizard.complete_analysis(AnalysisResult(character='X')))
        self.persister.submit.assert_not_called()

    def test_restart_clears_everything(self):
        wizard = self.make_wizard(total=1, enable_guessing=True)
        wizard.start()
        wizard.toggle_guess('Gandhi')
        wizard.submit_guess()
        wizard.advance(long_answer('a'))
        wizard.run_analysis()

        wizard.restart()

        self.assertEqual(wizard.step, Step.LANDING)
        self.assertEqual(wizard.questions, [])
        self.assertEqual(wizard.responses, [])
        self.assertEqual(wizard.guesses, [])
        self.assertIsNone(wizard.result)
        self.assertEqual(wizard.question_index, 0)

        wizard.start()
        wizard.toggle_guess('Mozart')
        wizard.submit_guess()
        self.assertEqual(len(wizard.questions), 1)
        self.assertEqual(wizard.responses, [''])
        self.assertEqual(self.gateway.question_calls[-1], (0, []))

    def test_guess_selection_limit_and_renumbering(self):
        wizard = self.make_wizard(enable_guessing=True)
        wizard.start()
        for figure in HISTORICAL_FIGURES[:3]:
            self.assertTrue(wizard.toggle_guess(figure))
        self.assertFalse(wizard.toggle_guess(HISTORICAL_FIGURES[3]))
        self.assertEqual(len(wizard.guesses), 3)

        wizard.toggle_guess(HISTORICAL_FIGURES[0])
        self.assertEqual(wizard.guess_badges, {HISTORICAL_FIGURES[1]: 1, HISTORICAL_FIGURES[2]: 2})

        self.assertTrue(wizard.toggle_guess(HISTORICAL_FIGURES[3]))
        self.assertEqual(wizard.guess_badges[HISTORICAL_FIGURES[3]], 3)

    def test_toggle_rejects_unknown_figure(self):
        wizard = self.make_wizard(enable_guessing=True)
        wizard.start()
        self.assertFalse(wizard.toggle_guess('My Neighbour'))

    def test_submit_guess_normalizes(self):
        self.assertEqual(normalize_guesses(['A', '', 'A', ' B ', 'C', 'D']), ['A', 'B', 'C'])
        wizard = self.make_wizard(enable_guessing=True)
        wizard.start()
        wizard.submit_guess(['Mozart', 'Mozart', ''])
        self.assertEqual(wizard.guesses, ['Mozart'])
        self.assertEqual(wizard.step, Step.QUESTIONING)

    def test_guesses_must_be_names(self):
        self.assertEqual(normalize_guesses('Napoleon Bonaparte'), ['Napoleon Bonaparte'])
        self.assertEqual(normalize_guesses([1, None, {'a': 1}, 'Mozart']), ['Mozart'])
        self.assertEqual(normalize_guesses({'name': 'Mozart'}), [])
        self.assertEqual(normalize_guesses(42), [])

        wizard = self.make_wizard(enable_guessing=True)
        wizard.start()
        wizard.submit_guess('Napoleon Bonaparte')
        self.assertEqual(wizard.guesses, ['Napoleon Bonaparte'])

    def test_submit_guess_needs_a_selection(self):
        wizard = self.make_wizard(enable_guessing=True)
        wizard.start()
        self.assertFalse(wizard.submit_guess())
        self.assertFalse(wizard.submit_guess([]))
        self.assertFalse(wizard.submit_guess([7, '  ']))
        self.assertEqual(wizard.step, Step.GUESSING)
        self.assertEqual(self.gateway.question_calls, [])

    def test_non_text_response_is_rejected(self):
        wizard = self.make_wizard()
        wizard.start()
        wizard.record_response(long_answer('a'))

        self.assertFalse(wizard.record_response(42))
        self.assertFalse(wizard.advance(['a long enough answer']))
        self.assertEqual(wizard.current_response, long_answer('a'))
        self.assertEqual(wizard.question_index, 0)
        self.assertTrue(wizard.record_response(None))
        self.assertEqual(wizard.current_response, '')

    def test_guess_matched(self):
        wizard = self.make_wizard(total=1, enable_guessing=True)
        wizard.start()
        wizard.submit_guess(['Joan of Arc'])
        wizard.advance(long_answer('a'))
        wizard.run_analysis()
        self.assertTrue(wizard.guess_matched)

    def test_fallback_outcome_is_tracked(self):
        wizard = self.make_wizard(total=1)
        self.gateway.request_question = lambda step, prior: GenerationOutcome.fallback(
            Question(index=step + 1, question=FALLBACK_QUESTION_TEXT), 'down')
        wizard.start()
        self.assertTrue(wizard.used_fallback)
        self.assertEqual(wizard.current_question.question, FALLBACK_QUESTION_TEXT)

    def test_state_round_trip_through_session_dict(self):
        wizard = self.make_wizard(total=3, enable_guessing=True)
        wizard.start()
        wizard.toggle_guess('Mozart')
        wizard.submit_guess()
        wizard.advance(long_answer('a'))

        restored = self.make_wizard(total=3, enable_guessing=True).load(wizard.to_dict())

        self.assertEqual(restored.to_dict(), wizard.to_dict())
        self.assertEqual(restored.current_question, wizard.current_question)

    def test_load_ignores_garbage(self):
        wizard = self.make_wizard()
        wizard.load({'step': 'nonsense'})
        self.assertEqual(wizard.step, Step.LANDING)
        wizard.load({'step': Step.QUESTIONING, 'questions': []})
        self.assertEqual(wizard.step, Step.LANDING)
        wizard.load(None)
        self.assertEqual(wizard.step, Step.LANDING)

    def test_progress(self):
        wizard = self.make_wizard(total=4)
        self.assertEqual(wizard.progress, 0)
        wizard.start()
        self.assertEqual(wizard.progress, 25)
        wizard.advance(long_answer('a'))
        self.assertEqual(wizard.progress, 50)


class ModelTests(SimpleTestCase):
    def test_analysis_result_clamps_and_coerces(self):
        result = AnalysisResult.from_dict({
            'character': ' Hannibal ',
            'matchPercentage': '150',
            'birthYear': 'unknown',
            'achievements': ['Crossed the Alps', None, ''],
            'traits': [{'title': 'Bold'}, 'junk', {'description': 'no title'}],
        })
        self.assertEqual(result.character, 'Hannibal')
        self.assertEqual(result.match_percentage, 100)
        self.assertIsNone(result.birth_year)
        self.assertEqual(result.achievements, ['Crossed the Alps'])
        self.assertEqual(result.traits, [{'title': 'Bold', 'description': ''}])

    def test_non_finite_numbers_fall_back_to_defaults(self):
        result = AnalysisResult.from_dict({
            'character': 'Hannibal',
            'matchPercentage': float('inf'),
            'birthYear': float('nan'),
            'deathYear': float('-inf'),
        })
        self.assertEqual(result.match_percentage, 0)
        self.assertIsNone(result.birth_year)
        self.assertIsNone(result.death_year)

    def test_question_defaults(self):
        question = Question.from_dict({'question': 'Why?'}, index=3)
        self.assertEqual(question.title, 'Question 3')
        self.assertEqual(question.options, [])
        self.assertFalse(question.is_multiple_choice)


class UtilsTests(SimpleTestCase):
    def test_biography_paragraphs(self):
        bio = 'One is here. Two is here. Three is here. Four is here. Five'
        self.assertEqual(biography_paragraphs(bio), [
            'One is here. Two is here.',
            'Three is here. Four is here.',
            'Five.',
        ])
        self.assertEqual(biography_paragraphs(''), [])

    def test_share_text(self):
        result = AnalysisResult(character='Mozart', match_percentage=90, description='Playful genius.')
        text = share_text(result, 'https://example.com/')
        self.assertIn("I'm a 90% match with Mozart", text)
        self.assertTrue(text.endswith('Take the assessment: https://example.com/'))
        self.assertEqual(share_text(None), '')


@override_settings(
    QUIZ_QUESTION_COUNT=2,
    QUIZ_MIN_RESPONSE_LENGTH=10,
    QUIZ_ENABLE_GUESSING=True,
    QUIZ_PERSIST_IN_BACKGROUND=False,
)
class QuizViewTests(TestCase):
    def setUp(self):
        cache.clear()
        self.gateway = FakeGateway()
        gateway_patcher = patch('quiz.views.get_gateway', return_value=self.gateway)
        gateway_patcher.start()
        self.addCleanup(gateway_patcher.stop)

        self.store = MagicMock()
        self.store.save_assessment.return_value = 'assessment1'
        store_patcher = patch('quiz.services.db', self.store)
        store_patcher.start()
        self.addCleanup(store_patcher.stop)

    def post(self, name, data=None):
        return self.client.post(
            reverse(f'quiz:{name}'),
            data=json.dumps(data or {}),
            content_type='application/json'
        )

    def test_index_renders_landing(self):
        response = self.client.get(reverse('quiz:index'))
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'quiz/wizard.html')
        self.assertContains(response, 'Begin the Assessment')

    def test_full_flow(self):
        data = self.post('start').json()
        self.assertEqual(data['state']['step'], 'guessing')

        data = self.post('toggle_guess', {'figure': 'Joan of Arc'}).json()
        self.assertEqual(data['state']['guess_badges'], {'Joan of Arc': 1})

        data = self.post('submit_guess').json()
        self.assertEqual(data['state']['step'], 'questioning')
        self.assertEqual(data['state']['question']['question'], 'Question text 1?')

        response = self.post('next_question', {'response': 'short'})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()['success'])

        self.post('next_question', {'response': long_answer('a')})
        data = self.post('next_question', {'response': long_answer('b')}).json()
        self.assertEqual(data['state']['step'], 'analyzing')

        data = self.post('analyze').json()
        self.assertEqual(data['state']['step'], 'results')
        self.assertEqual(data['state']['result']['character'], 'Joan of Arc')
        self.assertTrue(data['state']['guess_matched'])

        self.store.save_assessment.assert_called_once()
        record = self.store.save_assessment.call_args[0][0]
        self.assertEqual(record['responses'], [long_answer('a'), long_answer('b')])
        self.assertIsNone(record['user_id'])

        page = self.client.get(reverse('quiz:index'))
        self.assertContains(page, 'Why You Match Joan of Arc')

        data = self.post('restart').json()
        self.assertEqual(data['state']['step'], 'landing')
        self.assertIsNone(data['state']['result'])

    def test_persistence_failure_is_invisible(self):
        self.store.save_assessment.side_effect = Exception('quota exceeded')
        self.post('start')
        self.post('submit_guess', {'guesses': ['Mozart']})
        self.post('next_question', {'response': long_answer('a')})
        self.post('next_question', {'response': long_answer('b')})

        response = self.post('analyze')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['state']['step'], 'results')

    def test_user_id_comes_from_session(self):
        session = self.client.session
        session['uid'] = 'firebase-uid'
        session.save()
        self.post('start')
        self.post('submit_guess', {'guesses': ['Mozart']})
        self.post('next_question', {'response': long_answer('a')})
        self.post('next_question', {'response': long_answer('b')})
        self.post('analyze')

        record = self.store.save_assessment.call_args[0][0]
        self.assertEqual(record['user_id'], 'firebase-uid')

    def test_previous_and_state(self):
        self.post('start')
        data = self.post('previous_question').json()
        self.assertEqual(data['state']['step'], 'landing')

        response = self.client.get(reverse('quiz:state'))
        self.assertEqual(response.json()['state']['step'], 'landing')

    def test_invalid_transition_is_400(self):
        response = self.post('analyze')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['state']['step'], 'landing')

    def test_concurrent_generation_is_rejected(self):
        session = self.client.session
        session.save()
        cache.add(session_lock_key(session.session_key), True, 60)

        response = self.post('start')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.gateway.question_calls, [])

    def test_restart_and_previous_wait_for_the_lock(self):
        self.post('start')
        self.post('submit_guess', {'guesses': ['Mozart']})
        cache.add(session_lock_key(self.client.session.session_key), True, 60)

        self.assertEqual(self.post('restart').status_code, 409)
        self.assertEqual(self.post('previous_question').status_code, 409)
        self.assertEqual(self.post('save_response', {'response': 'x'}).status_code, 409)
        self.assertEqual(self.post('toggle_guess', {'figure': 'Gandhi'}).status_code, 409)

        state = self.client.get(reverse('quiz:state')).json()['state']
        self.assertEqual(state['step'], 'questioning')
        self.assertEqual(state['guesses'], ['Mozart'])

    def test_session_is_written_before_lock_release(self):
        self.post('start')
        seen = []

        def record_stored_step(key):
            seen.append(self.client.session.get('quiz_state', {}).get('step'))

        with patch('quiz.decorators.cache') as lock_cache:
            lock_cache.add.return_value = True
            lock_cache.delete.side_effect = record_stored_step
            self.post('restart')

        self.assertEqual(seen, ['landing'])

    def test_non_text_response_is_400(self):
        self.post('start')
        self.post('submit_guess', {'guesses': ['Mozart']})

        for name in ('next_question', 'save_response'):
            for value in (42, ['a long enough answer'], {'text': 'a long enough answer'}):
                response = self.post(name, {'response': value})
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()['error'], 'The response must be text')
                self.assertEqual(response.json()['state']['question_number'], 1)

    def test_guesses_payload_is_normalized(self):
        self.post('start')
        data = self.post('submit_guess', {'guesses': 'Napoleon Bonaparte'}).json()
        self.assertEqual(data['state']['guesses'], ['Napoleon Bonaparte'])

        self.post('restart')
        self.post('start')
        data = self.post('submit_guess', {'guesses': [1, None, 'Mozart']}).json()
        self.assertEqual(data['state']['guesses'], ['Mozart'])

    def test_empty_guess_submit_is_400(self):
        self.post('start')
        response = self.post('submit_guess', {'guesses': []})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['state']['step'], 'guessing')
        self.assertEqual(self.gateway.question_calls, [])

    def test_lock_released_after_request(self):
        self.post('start')
        self.post('submit_guess', {'guesses': ['Mozart']})
        data = self.post('next_question', {'response': long_answer('a')}).json()
        self.assertTrue(data['success'])

    def test_get_not_allowed_on_actions(self):
        response = self.client.get(reverse('quiz:start'))
        self.assertEqual(response.status_code, 405)


class PreviewPromptCommandTests(SimpleTestCase):
    def test_prints_question_prompt(self):
        from io import StringIO
        from django.core.management import call_command

        out = StringIO()
        call_command('preview_quiz_prompt', step=2, response=['I would call for help'], stdout=out)

        output = out.getvalue()
        self.assertIn(f"Question 2: {QUESTION_CATEGORIES[1]['name']}", output)
        self.assertIn('1. I would call for help', output)

    @override_settings(GEMINI_API_KEY='')
    def test_send_without_key_reports_fallback(self):
        from io import StringIO
        from django.core.management import call_command

        out = StringIO()
        call_command('preview_quiz_prompt', analysis=True, response=['a'], send=True, stdout=out)

        output = out.getvalue()
        self.assertIn('Fallback used', output)
        self.assertIn('Marcus Aurelius', output)
