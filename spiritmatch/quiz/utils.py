import re


def share_text(result, url=''):
    """Message used by the results page share button."""
    if not result:
        return ''
    text = (
        f"I just discovered my historical spirit! I'm a {result.match_percentage}% match "
        f"with {result.character} - {result.description}"
    ).strip()
    if url:
        text = f"{text} Take the assessment: {url}"
    return text


def biography_paragraphs(biography, sentences_per_paragraph=2):
    """
    Split a biography into short paragraphs.
    Sentences end at a period followed by whitespace and a capital letter.
    """
    if not biography:
        return []
    sentences = [s.strip() for s in re.split(r'(?<=\.)\s+(?=[A-Z])', biography.strip()) if s.strip()]
    paragraphs = []
    for i in range(0, len(sentences), sentences_per_paragraph):
        paragraph = ' '.join(sentences[i:i + sentences_per_paragraph])
        if not paragraph.endswith(('.', '!', '?')):
            paragraph += '.'
        paragraphs.append(paragraph)
    return paragraphs
