from firebase_admin import firestore


class BaseFirestoreService:
    def __init__(self):
        self._db = None

    @property
    def db(self):
        if self._db is None:
            self._db = firestore.client()
        return self._db

    def get_document(self, collection_name, doc_id):
        doc = self.db.collection(collection_name).document(doc_id).get()
        if doc.exists:
            return {**doc.to_dict(), 'id': doc.id}
        return None

    def create_document(self, collection_name, data, doc_id=None):
        if doc_id:
            self.db.collection(collection_name).document(doc_id).set(data)
            return doc_id
        _, doc_ref = self.db.collection(collection_name).add(data)
        return doc_ref.id

    def update_document(self, collection_name, doc_id, data, merge=False):
        doc_ref = self.db.collection(collection_name).document(doc_id)
        if merge:
            doc_ref.set(data, merge=True)
        else:
            doc_ref.update(data)
