from .quiz_data import ANALYSIS_FIGURE_POOL

# Ordered scenario categories; question N uses entry (N - 1) mod len.
QUESTION_CATEGORIES = [
    {
        'key': 'leadership_crisis',
        'name': 'Leadership crisis',
        'focus': 'Leading a team through an unexpected disaster',
    },
    {
        'key': 'creative_challenge',
        'name': 'Creative challenge',
        'focus': 'Balancing innovation with practical constraints',
    },
    {
        'key': 'resource_allocation',
        'name': 'Resource allocation',
        'focus': 'Distributing limited resources among competing needs',
    },
    {
        'key': 'social_conflict',
        'name': 'Social conflict',
        'focus': 'Mediating between opposing groups with valid concerns',
    },
    {
        'key': 'personal_sacrifice',
        'name': 'Personal sacrifice',
        'focus': 'Choosing between personal gain and the greater good',
    },
    {
        'key': 'knowledge_vs_action',
        'name': 'Knowledge vs action',
        'focus': "Having information others don't - when to act or speak",
    },
    {
        'key': 'legacy_building',
        'name': 'Legacy building',
        'focus': 'How to be remembered versus making an immediate impact',
    },
    {
        'key': 'change_vs_tradition',
        'name': 'Change vs tradition',
        'focus': 'Reforming established systems people depend on',
    },
]


QUESTION_PROMPT_TEMPLATE = """
You are conducting a personality assessment to match someone with a historical figure.

{context}

Generate question {question_number} of {total}.

SCENARIO CATEGORY FOR THIS QUESTION: {category_name}
{category_focus}

Create a realistic scenario in this category that:
- Tests core values, decision-making patterns, and natural instincts
- Reveals leadership style, risk tolerance, and moral priorities
- Shows whether they're driven by logic, emotion, duty, or personal conviction
- Is under 45 words total
- Has NO obvious "correct" answer - requires revealing personal philosophy
- Is completely different from the previous questions in both topic and approach

You may offer up to 5 short answer choices in "options" when the scenario suits a
multiple-choice answer; otherwise return an empty list so the person answers in their own words.

Format as JSON:
{{
  "title": "2-3 Word Title",
  "question": "Engaging scenario that forces them to reveal their true nature and decision-making process",
  "placeholder": "Brief response starter...",
  "options": []
}}

Only return the JSON, no other text.
"""


ANALYSIS_PROMPT_TEMPLATE = """
Based on these personality assessment responses, conduct a comprehensive psychological analysis to match this person with a historical figure.

Responses:
{transcript}

COMPREHENSIVE ANALYSIS PROCESS:

1. DECISION-MAKING PATTERNS:
Are they intuitive or calculated? Risk-taking or cautious? Do they seek input or decide independently?

2. CORE VALUE SYSTEM:
Do they prioritize idealism or pragmatism? Justice or mercy? Individual rights or collective benefit?

3. LEADERSHIP INSTINCTS:
Are they inspirational or systematic? Collaborative or authoritative? Do they embrace change or preserve tradition?

4. RELATIONSHIP WITH POWER:
Do they seek power for service or achievement? Are they ambitious or reluctant leaders?

5. ADVERSITY RESPONSE:
Are they adaptive or persistent? Confrontational or diplomatic? Do they take accountability?

Match them to a WIDELY RECOGNIZED historical figure that shares these core personality patterns.

HISTORICAL FIGURES POOL: {figure_pool}, etc.

REQUIREMENTS:
- Match based on deep psychological patterns, not superficial similarities
- Choose figures known globally across cultures and education systems
- Avoid regional or lesser-known historical figures

Return analysis in JSON format:
{{
  "character": "Historical Figure Name",
  "matchPercentage": 85,
  "description": "2-3 sentences explaining the psychological and behavioral connections",
  "shortDescription": "3-7 word concise character description",
  "biography": "3-4 paragraph biography focusing on personality traits and leadership patterns",
  "birthYear": 100,
  "deathYear": 200,
  "location": "City, Country",
  "achievements": ["3-4 key historical achievements"],
  "traits": [
    {{"title": "Trait Name", "description": "How this trait shows in both the person and the historical figure"}},
    {{"title": "Another Trait", "description": "Another matching trait"}},
    {{"title": "Third Trait", "description": "Third matching trait"}}
  ]
}}

Only return the JSON, no other text.
"""


def category_for_step(step_index):
    """Category descriptor for a zero-based step; wraps around the table."""
    return QUESTION_CATEGORIES[step_index % len(QUESTION_CATEGORIES)]


def format_transcript(responses):
    """Numbered list of answers, one per line."""
    return '\n'.join(f"{i}. {r}" for i, r in enumerate(responses, start=1))


def build_question_prompt(step_index, prior_responses, total=7):
    """
    Prompt for the question at zero-based ``step_index``.
    Prior answers are embedded so the model avoids repeating scenario types.
    """
    if prior_responses:
        context = f"Previous responses:\n{format_transcript(prior_responses)}"
    else:
        context = 'This is the first question.'

    category = category_for_step(step_index)

    return QUESTION_PROMPT_TEMPLATE.format(
        context=context,
        question_number=step_index + 1,
        total=total,
        category_name=category['name'],
        category_focus=category['focus'],
    )


def build_analysis_prompt(responses):
    return ANALYSIS_PROMPT_TEMPLATE.format(
        transcript=format_transcript(responses),
        figure_pool=', '.join(ANALYSIS_FIGURE_POOL),
    )
