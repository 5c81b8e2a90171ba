from firebase_admin import firestore


class AssessmentMixin:
    def save_assessment(self, record):
        """
        Insert a completed assessment.
        Every call creates a new document; repeated submissions accumulate.
        Returns the assessment document ID.
        """
        data = dict(record)
        data['created_at'] = firestore.SERVER_TIMESTAMP

        _, doc_ref = self.db.collection('assessments').add(data)

        # Point the user profile at their latest result
        uid = data.get('user_id')
        if uid:
            result = data.get('result') or {}
            self.update_document('users', uid, {
                'latest_assessment_id': doc_ref.id,
                'latest_character': result.get('character'),
                'latest_assessment_at': firestore.SERVER_TIMESTAMP
            }, merge=True)

        return doc_ref.id

    def get_assessment(self, assessment_id):
        return self.get_document('assessments', assessment_id)

    def get_user_assessments(self, uid, limit=10):
        """
        Get a user's most recent assessments, newest first.
        """
        from google.cloud.firestore import FieldFilter
        query = self.db.collection('assessments').where(
            filter=FieldFilter('user_id', '==', uid)
        ).order_by('created_at', direction=firestore.Query.DESCENDING).limit(limit)

        return [{**doc.to_dict(), 'id': doc.id} for doc in query.stream()]
