"""
Static quiz data: the guess-screen catalogue, analysis screen messages
and the fallback content served when a generation call fails.
"""

# Figures offered on the guess screen
HISTORICAL_FIGURES = [
    'Napoleon Bonaparte',
    'Cleopatra VII',
    'Leonardo da Vinci',
    'Albert Einstein',
    'Winston Churchill',
    'Joan of Arc',
    'Julius Caesar',
    'Marie Curie',
    'Alexander the Great',
    'Gandhi',
    'Elizabeth I',
    'Benjamin Franklin',
    'Theodore Roosevelt',
    'Catherine the Great',
    'Abraham Lincoln',
    'Mozart',
    'Shakespeare',
    'Confucius',
    'Genghis Khan',
    'Hannibal',
]

MAX_GUESSES = 3

# Pool the analysis prompt steers the model towards
ANALYSIS_FIGURE_POOL = [
    'Napoleon Bonaparte', 'Cleopatra VII', 'Leonardo da Vinci', 'Albert Einstein',
    'Winston Churchill', 'Genghis Khan', 'Alexander the Great', 'Julius Caesar',
    'Mahatma Gandhi', 'Joan of Arc', 'Benjamin Franklin', 'Elizabeth I', 'Confucius',
    'Abraham Lincoln', 'Theodore Roosevelt', 'Catherine the Great', 'Otto von Bismarck',
    'Hannibal Barca', 'Wolfgang Mozart', 'William Shakespeare', 'Marie Curie',
    'Marcus Aurelius', 'Nelson Mandela',
]

ANALYSIS_MESSAGES = [
    'Analyzing your character traits...',
    'Comparing with history\'s great leaders...',
    'Evaluating your cultural affinity...',
    'Examining your leadership style...',
    'Studying your values and principles...',
    'Calculating historical compatibility...',
    'Finalizing your historical match...',
]

FALLBACK_QUESTION_TEXT = 'Tell me about a challenging situation you faced and how you handled it.'

FALLBACK_QUESTION = {
    'title': 'Facing a Challenge',
    'question': FALLBACK_QUESTION_TEXT,
    'placeholder': 'When things got difficult, I...',
    'options': [],
}

FALLBACK_ANALYSIS = {
    'character': 'Marcus Aurelius',
    'matchPercentage': 88,
    'description': (
        'A thoughtful leader who balances wisdom with action, prioritizing '
        'long-term thinking and principled decision-making.'
    ),
    'shortDescription': 'Philosopher Emperor and Stoic Leader',
    'biography': (
        "Marcus Aurelius stood as one of history's most unique figures - a philosopher who "
        "wielded absolute power yet remained grounded in wisdom and humility. As Roman Emperor "
        "from 161 to 180 CE, he faced constant military campaigns, plague, and political "
        "challenges, yet never abandoned his commitment to Stoic philosophy and self-improvement. "
        "His personal journal, 'Meditations,' reveals a leader constantly examining his own "
        "actions and motivations, striving to serve the greater good rather than personal "
        "ambition. Marcus Aurelius believed that true leadership came from inner discipline and "
        "rational thinking, approaching each crisis with measured consideration rather than "
        "emotional reaction. He demonstrated that power could be wielded with wisdom, compassion, "
        "and an unwavering commitment to duty over personal desires."
    ),
    'birthYear': 121,
    'deathYear': 180,
    'location': 'Rome, Roman Empire',
    'achievements': [
        'Successfully defended Roman Empire during multiple military campaigns',
        "Authored 'Meditations', one of history's greatest philosophical works",
        'Maintained stability during plague and internal conflicts',
        'Exemplified philosopher-king ideal in actual governance',
    ],
    'traits': [
        {
            'title': 'Reflective',
            'description': 'Both you and Marcus value deep thinking and self-examination before making decisions',
        },
        {
            'title': 'Duty-Bound',
            'description': 'Strong sense of responsibility and commitment to serving something greater than yourself',
        },
        {
            'title': 'Balanced',
            'description': 'Ability to combine practical action with philosophical wisdom and long-term perspective',
        },
    ],
}
