from unittest.mock import MagicMock, patch

from django.test import SimpleTestCase

from core.services import FirestoreService


class AssessmentStorageTest(SimpleTestCase):
    def setUp(self):
        self.service = FirestoreService()
        self.firestore = MagicMock()
        self.service._db = self.firestore

        doc_ref = MagicMock()
        doc_ref.id = 'assessment123'
        self.firestore.collection.return_value.add.return_value = (None, doc_ref)

    def test_save_assessment_inserts_record(self):
        record = {'questions': ['Q1'], 'responses': ['R1'], 'result': {'character': 'Mozart'}, 'user_id': None}

        assessment_id = self.service.save_assessment(record)

        self.assertEqual(assessment_id, 'assessment123')
        self.firestore.collection.assert_called_once_with('assessments')
        saved = self.firestore.collection.return_value.add.call_args[0][0]
        self.assertEqual(saved['questions'], ['Q1'])
        self.assertIn('created_at', saved)
        # Caller's dict is left alone
        self.assertNotIn('created_at', record)

    def test_save_assessment_updates_user_profile(self):
        record = {'questions': [], 'responses': [], 'result': {'character': 'Mozart'}, 'user_id': 'uid1'}

        self.service.save_assessment(record)

        self.firestore.collection.assert_any_call('users')
        self.firestore.collection.return_value.document.assert_called_with('uid1')
        set_call = self.firestore.collection.return_value.document.return_value.set.call_args
        self.assertEqual(set_call[0][0]['latest_assessment_id'], 'assessment123')
        self.assertEqual(set_call[0][0]['latest_character'], 'Mozart')
        self.assertEqual(set_call[1], {'merge': True})

    def test_repeated_saves_accumulate(self):
        record = {'questions': [], 'responses': [], 'result': {}, 'user_id': None}
        self.service.save_assessment(record)
        self.service.save_assessment(record)
        self.assertEqual(self.firestore.collection.return_value.add.call_count, 2)

    def test_get_assessment(self):
        doc = MagicMock()
        doc.exists = True
        doc.id = 'a1'
        doc.to_dict.return_value = {'character_result': 'Gandhi'}
        self.firestore.collection.return_value.document.return_value.get.return_value = doc

        self.assertEqual(self.service.get_assessment('a1'), {'character_result': 'Gandhi', 'id': 'a1'})

    def test_client_created_lazily(self):
        service = FirestoreService()
        with patch('core.services.base.firestore.client') as client:
            client.assert_not_called()
            service.db
            service.db
            client.assert_called_once()
