from .base import BaseFirestoreService
from .assessments import AssessmentMixin


class FirestoreService(
    AssessmentMixin,
    BaseFirestoreService
):
    """
    Main service class combining all mixins.
    """
    pass

# Create singleton instance
db = FirestoreService()
