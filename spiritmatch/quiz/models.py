"""
Value objects passed between the wizard, the generation gateway and the
persister. They serialise to the same camelCase keys the model is asked to
produce, so session data, LLM payloads and stored records share one shape.
"""

MAX_OPTIONS = 5


def _clean_strings(values, limit=None):
    if not isinstance(values, (list, tuple)):
        return []
    cleaned = [str(v).strip() for v in values if v is not None and str(v).strip()]
    if limit is not None:
        cleaned = cleaned[:limit]
    return cleaned


def _to_int(value, default=None):
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


class Question:
    """One generated wizard question. Treated as immutable once created."""

    def __init__(self, index, question, title='', placeholder='', options=None):
        self.index = index
        self.question = question
        self.title = title or f"Question {index}"
        self.placeholder = placeholder or ''
        self.options = _clean_strings(options or [], limit=MAX_OPTIONS)

    @classmethod
    def from_dict(cls, data, index=None):
        return cls(
            index=index if index is not None else _to_int(data.get('index'), 1),
            question=str(data.get('question') or '').strip(),
            title=str(data.get('title') or '').strip(),
            placeholder=str(data.get('placeholder') or '').strip(),
            options=data.get('options'),
        )

    def to_dict(self):
        return {
            'index': self.index,
            'title': self.title,
            'question': self.question,
            'placeholder': self.placeholder,
            'options': list(self.options),
        }

    @property
    def is_multiple_choice(self):
        return bool(self.options)

    def __eq__(self, other):
        return isinstance(other, Question) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"Question({self.index}, {self.question!r})"


class AnalysisResult:
    """The historical-figure match produced at the end of a session."""

    def __init__(self, character, match_percentage=0, description='', short_description='',
                 biography='', birth_year=None, death_year=None, location='',
                 achievements=None, traits=None):
        self.character = character
        self.match_percentage = max(0, min(100, _to_int(match_percentage, 0)))
        self.description = description or ''
        self.short_description = short_description or ''
        self.biography = biography or ''
        self.birth_year = birth_year
        self.death_year = death_year
        self.location = location or ''
        self.achievements = _clean_strings(achievements or [])
        self.traits = []
        for trait in traits or []:
            if not isinstance(trait, dict):
                continue
            title = str(trait.get('title') or '').strip()
            if title:
                self.traits.append({
                    'title': title,
                    'description': str(trait.get('description') or '').strip(),
                })

    @classmethod
    def from_dict(cls, data):
        return cls(
            character=str(data.get('character') or '').strip(),
            match_percentage=data.get('matchPercentage'),
            description=str(data.get('description') or '').strip(),
            short_description=str(data.get('shortDescription') or '').strip(),
            biography=str(data.get('biography') or '').strip(),
            birth_year=_to_int(data.get('birthYear')),
            death_year=_to_int(data.get('deathYear')),
            location=str(data.get('location') or '').strip(),
            achievements=data.get('achievements'),
            traits=data.get('traits'),
        )

    def to_dict(self):
        return {
            'character': self.character,
            'matchPercentage': self.match_percentage,
            'description': self.description,
            'shortDescription': self.short_description,
            'biography': self.biography,
            'birthYear': self.birth_year,
            'deathYear': self.death_year,
            'location': self.location,
            'achievements': list(self.achievements),
            'traits': [dict(t) for t in self.traits],
        }

    def __eq__(self, other):
        return isinstance(other, AnalysisResult) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"AnalysisResult({self.character!r}, {self.match_percentage}%)"


class GenerationOutcome:
    """
    Result of a generation call: either the model's payload or the fallback.

    Attributes:
        payload: The Question or AnalysisResult handed to the caller.
        is_fallback: True when the payload is the hardcoded substitute.
        error: Failure message when is_fallback is True, else None.
    """

    def __init__(self, payload, is_fallback=False, error=None):
        self.payload = payload
        self.is_fallback = is_fallback
        self.error = error

    @classmethod
    def success(cls, payload):
        return cls(payload)

    @classmethod
    def fallback(cls, payload, error):
        return cls(payload, is_fallback=True, error=str(error))

    def __repr__(self):
        kind = 'fallback' if self.is_fallback else 'success'
        return f"GenerationOutcome({kind}, {self.payload!r})"


class PersistOutcome:
    """Result of writing an assessment: ``ok`` with a record id, or the error."""

    def __init__(self, ok, record_id=None, error=None):
        self.ok = ok
        self.record_id = record_id
        self.error = error

    def __bool__(self):
        return self.ok

    def __repr__(self):
        return f"PersistOutcome(ok={self.ok}, record_id={self.record_id!r})"
