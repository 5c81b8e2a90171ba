import json

from django.core.management.base import BaseCommand

from quiz.prompts import build_analysis_prompt, build_question_prompt, category_for_step
from quiz.services import get_gateway


class Command(BaseCommand):
    help = 'Prints the question or analysis prompt and optionally sends it to Gemini'

    def add_arguments(self, parser):
        parser.add_argument(
            '--step',
            type=int,
            default=1,
            help='Question number to build the prompt for (1-based)'
        )
        parser.add_argument(
            '--response',
            action='append',
            default=[],
            help='A prior response; repeat for several'
        )
        parser.add_argument(
            '--analysis',
            action='store_true',
            help='Build the final analysis prompt from the responses instead'
        )
        parser.add_argument(
            '--send',
            action='store_true',
            help='Send the prompt to the model and print the parsed outcome'
        )

    def handle(self, *args, **options):
        responses = options['response']
        gateway = get_gateway()

        if options['analysis']:
            if not responses:
                self.stdout.write(self.style.ERROR("--analysis needs at least one --response"))
                return
            self.stdout.write(build_analysis_prompt(responses))
            if options['send']:
                self._print_outcome(gateway.request_analysis(responses))
            return

        step_index = max(options['step'], 1) - 1
        category = category_for_step(step_index)
        self.stdout.write(self.style.HTTP_INFO(f"=== Question {step_index + 1}: {category['name']} ==="))
        self.stdout.write(build_question_prompt(step_index, responses, total=gateway.total_questions))

        if options['send']:
            self._print_outcome(gateway.request_question(step_index, responses))

    def _print_outcome(self, outcome):
        payload = json.dumps(outcome.payload.to_dict(), indent=2)
        if outcome.is_fallback:
            self.stdout.write(self.style.WARNING(f"Fallback used: {outcome.error}"))
        else:
            self.stdout.write(self.style.SUCCESS("Model response parsed"))
        self.stdout.write(payload)
