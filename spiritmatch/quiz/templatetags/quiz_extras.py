from django import template

from ..utils import biography_paragraphs as split_biography

register = template.Library()


@register.filter
def biography_paragraphs(biography):
    """Template filter: biography text as a list of paragraphs."""
    return split_biography(biography)


@register.filter
def get_item(dictionary, key):
    """Get an item from a dictionary"""
    if dictionary is None:
        return None
    return dictionary.get(key)
