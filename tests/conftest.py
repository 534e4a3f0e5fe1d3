"""
Shared test fixtures for the Educa Sol backend.
The Supabase client and the serverless functions are in-memory fakes;
the JWT secret and audit log path are monkeypatched.
Zero network calls.
"""
import copy
import time
import uuid

import jwt
import pytest

from educassol.app import create_app
from educassol.config import config
from educassol.services.backend import BackendClient

JWT_SECRET = "test-jwt-secret"

TEACHER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_TEACHER_ID = "22222222-2222-4222-8222-222222222222"
ADMIN_ID = "33333333-3333-4333-8333-333333333333"
STUDENT_ID = "44444444-4444-4444-8444-444444444444"
SCHOOL_ID = "aaaaaaaa-aaaa-4aaa-8aaa-aaaaaaaaaaaa"
OTHER_SCHOOL_ID = "bbbbbbbb-bbbb-4bbb-8bbb-bbbbbbbbbbbb"
EXAM_ID = "cccccccc-cccc-4ccc-8ccc-cccccccccccc"
RESULT_ID = "dddddddd-dddd-4ddd-8ddd-dddddddddddd"
SUBMISSION_ID = "eeeeeeee-eeee-4eee-8eee-eeeeeeeeeeee"
VERIFICATION_TOKEN = "f0f0f0f0-f0f0-4f0f-8f0f-f0f0f0f0f0f0"


# ============ Fake Supabase ============

class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the PostgREST query builder for the repository."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = 'select'
        self.payload = None
        self.filters = []
        self._order = None
        self._limit = None

    def select(self, *columns, **kwargs):
        self.op = 'select'
        return self

    def insert(self, payload):
        self.op = 'insert'
        self.payload = payload
        return self

    def update(self, payload):
        self.op = 'update'
        self.payload = payload
        return self

    def delete(self):
        self.op = 'delete'
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def is_(self, column, value):
        if value == 'null':
            self.filters.append(lambda row: row.get(column) is None)
        else:
            self.filters.append(lambda row: row.get(column) == value)
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def execute(self):
        self.db.calls.append((self.table, self.op))
        error = self.db.fail_on.get((self.table, self.op))
        if error is not None:
            raise error

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == 'insert':
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = []
            for item in items:
                row = {'id': str(uuid.uuid4()), **item}
                rows.append(row)
                created.append(copy.deepcopy(row))
            return FakeResponse(created)

        matched = [r for r in rows if all(f(r) for f in self.filters)]
        if self.op == 'update':
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse(copy.deepcopy(matched))
        if self.op == 'delete':
            self.db.tables[self.table] = [r for r in rows if r not in matched]
            return FakeResponse(copy.deepcopy(matched))

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: str(r.get(column) or ''), reverse=desc)
        if self._limit is not None:
            matched = matched[:self._limit]
        return FakeResponse(copy.deepcopy(matched))


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def upload(self, path, data, file_options=None):
        if self.storage.fail_upload:
            raise RuntimeError("storage unavailable")
        self.storage.objects[path] = data
        return {'Key': f"{self.name}/{path}"}

    def remove(self, paths):
        if self.storage.fail_remove:
            raise RuntimeError("remove failed")
        for path in paths:
            self.storage.objects.pop(path, None)
            self.storage.removed.append(path)
        return []

    def create_signed_url(self, path, expires_in):
        return {'signedURL': f"https://storage.test/{self.name}/{path}?ttl={expires_in}"}


class FakeStorage:
    def __init__(self):
        self.objects = {}
        self.removed = []
        self.buckets = []
        self.fail_upload = False
        self.fail_remove = False

    def from_(self, name):
        self.buckets.append(name)
        return FakeBucket(self, name)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.fail_on = {}
        self.storage = FakeStorage()

    def table(self, name):
        return FakeQuery(self, name)


class FakeFunctions:
    """Stand-in for EdgeFunctionClient that records every call."""

    def __init__(self):
        self.calls = []
        self.errors = {}
        self.total_score = 11
        self.closed = False

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.errors:
            raise self.errors[name]

    def upload_exam(self, token, file_bytes, filename, mime_type, exam_id, student_identifier=None):
        self._record('upload-exam', token, filename, mime_type, exam_id, student_identifier)
        return f"sub-{len(self.calls)}"

    def analyze_exam(self, token, submission_id):
        self._record('analyze-exam', token, submission_id)
        return self.total_score

    def generate_report(self, token, result_id):
        self._record('generate-report', token, result_id)
        return f"https://storage.test/reports/{result_id}.pdf"

    def close(self):
        self.closed = True


# ============ Sample data ============

def make_rubric():
    return {
        "title": "Prova de Matemática",
        "total_points": 15,
        "questions": [
            {"number": "1", "topic": "Frações", "max_points": 10},
            {"number": "2", "topic": "Porcentagem", "max_points": 5},
        ],
    }


def make_grading_result(overrides=None):
    return {
        "student_metadata": {"name": "Ana Maria Souza", "student_id": "2024-17", "handwriting_quality": "good"},
        "questions": [
            {
                "number": "1", "topic": "Frações",
                "student_response_transcription": "3/4 + 1/4 = 1",
                "is_correct": True, "points_awarded": 8, "max_points": 10,
                "reasoning": "Resposta correta, faltou justificar.",
                "feedback_for_student": "Mostre o desenvolvimento.",
            },
            {
                "number": "2", "topic": "Porcentagem",
                "student_response_transcription": "20% de 50 = 10",
                "is_correct": True, "points_awarded": 5, "max_points": 5,
                "reasoning": "Correto.",
                "feedback_for_student": "Muito bem!",
            },
        ],
        "summary_comment": "Bom desempenho geral.",
        "total_score": 13,
        "confidenceScore": 92,
        "overrides": overrides or [],
    }


@pytest.fixture
def rubric_data():
    return make_rubric()


@pytest.fixture
def grading_data():
    return make_grading_result()


@pytest.fixture
def grading_result():
    from educassol.assessment.grading_result import GradingResult
    return GradingResult.model_validate(make_grading_result())


# ============ App fixtures ============

@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point the JWT secret and audit log at test values."""
    monkeypatch.setattr(config, "jwt_secret", JWT_SECRET)
    monkeypatch.setattr(config, "audit_log_file", str(tmp_path / "audit.log"))
    return config


@pytest.fixture
def fake_db():
    db = FakeSupabase()
    db.tables['profiles'] = [
        {'id': TEACHER_ID, 'school_id': SCHOOL_ID},
        {'id': OTHER_TEACHER_ID, 'school_id': OTHER_SCHOOL_ID},
        {'id': ADMIN_ID, 'school_id': SCHOOL_ID},
        {'id': STUDENT_ID, 'school_id': SCHOOL_ID},
    ]
    db.tables['user_roles'] = [
        {'user_id': TEACHER_ID, 'role': 'teacher'},
        {'user_id': OTHER_TEACHER_ID, 'role': 'teacher'},
        {'user_id': ADMIN_ID, 'role': 'school_admin'},
    ]
    return db


@pytest.fixture
def seeded_db(fake_db):
    """One exam with two submissions, one of them graded."""
    fake_db.tables['exams'] = [{
        'id': EXAM_ID, 'title': 'Prova de Matemática', 'description': '1º bimestre',
        'status': 'published', 'rubric': make_rubric(), 'created_at': '2026-03-01T10:00:00+00:00',
        'educator_id': TEACHER_ID, 'school_id': SCHOOL_ID, 'class_id': None,
    }]
    fake_db.tables['submissions'] = [
        {
            'id': SUBMISSION_ID, 'exam_id': EXAM_ID, 'student_identifier': 'Ana Maria Souza',
            'storage_path': f"user_{TEACHER_ID}/exam_{EXAM_ID}/1700000000000_ana.pdf",
            'file_type': 'pdf', 'file_size_bytes': 2048, 'status': 'graded',
            'uploaded_at': '2026-03-02T10:00:00+00:00', 'processed_at': '2026-03-02T10:01:00+00:00',
            'results': [{'id': RESULT_ID, 'total_score': 13, 'verification_token': VERIFICATION_TOKEN}],
        },
        {
            'id': 'sub-2', 'exam_id': EXAM_ID, 'student_identifier': 'Bruno Lima',
            'storage_path': f"user_{TEACHER_ID}/exam_{EXAM_ID}/1700000000001_bruno.pdf",
            'file_type': 'pdf', 'file_size_bytes': 1024, 'status': 'processing',
            'uploaded_at': '2026-03-03T10:00:00+00:00', 'results': [],
        },
    ]
    fake_db.tables['results'] = [{
        'id': RESULT_ID, 'submission_id': SUBMISSION_ID, 'ai_output': make_grading_result(),
        'total_score': 13, 'pdf_report_url': None, 'verification_token': VERIFICATION_TOKEN,
        'graded_at': '2026-03-05T14:30:00+00:00',
        'submission': {
            'id': SUBMISSION_ID, 'student_identifier': 'Ana Maria Souza',
            'exam': {'id': EXAM_ID, 'title': 'Prova de Matemática',
                     'educator_id': TEACHER_ID, 'school_id': SCHOOL_ID},
        },
    }]
    return fake_db


@pytest.fixture
def fake_functions():
    return FakeFunctions()


@pytest.fixture
def backend(seeded_db, fake_functions):
    return BackendClient(supabase=seeded_db, functions=fake_functions)


@pytest.fixture
def app(backend):
    app = create_app(backend=backend)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def make_token(user_id, secret=JWT_SECRET, expires_in=3600, audience="authenticated"):
    now = int(time.time())
    return jwt.encode(
        {"sub": user_id, "email": f"{user_id[:4]}@escola.test", "aud": audience,
         "iat": now, "exp": now + expires_in},
        secret,
        algorithm="HS256",
    )


@pytest.fixture
def auth_headers():
    """Bearer headers for a given user id."""
    def _headers(user_id=TEACHER_ID):
        return {"Authorization": f"Bearer {make_token(user_id)}"}
    return _headers
