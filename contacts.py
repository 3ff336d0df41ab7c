"""
Read-only queries against the contacts collection.

Documents come back as relaxed extended JSON (plain dicts, ``_id`` as
``{"$oid": ...}``) so they can go straight into json.dumps or a template.
"""
import json

from bson import json_util
from pymongo import MongoClient

DATABASE = 'heroku_crow'
COLLECTION = 'contacts'

PAGE_SKIP = 9
PAGE_LIMIT = 10


def to_json(doc):
    return json.loads(json_util.dumps(doc, json_options=json_util.RELAXED_JSON_OPTIONS))


class ContactStore:
    def __init__(self, collection):
        self.collection = collection

    @classmethod
    def from_uri(cls, uri):
        client = MongoClient(uri)
        return cls(client[DATABASE][COLLECTION])

    def list(self, skip=0, limit=10):
        cursor = self.collection.find({}, skip=skip, limit=limit)
        return [to_json(doc) for doc in cursor]

    def page(self):
        """The fixed slice shown on the /contacts page."""
        return self.list(skip=PAGE_SKIP, limit=PAGE_LIMIT)

    def by_email(self, email):
        doc = self.collection.find_one({'email': email})
        return to_json(doc) if doc is not None else None

    def by_name(self, first_name, last_name):
        doc = self.collection.find_one({'firstName': first_name, 'lastName': last_name})
        return to_json(doc) if doc is not None else None
