"""
Test: Serverless function client — requests are monkeypatched, no network.
"""
import pytest
import requests

from educassol.services.edge_functions import EdgeFunctionClient, EdgeFunctionError

BASE_URL = "https://proj.supabase.co/functions/v1"


class FakeHttpResponse:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self._body = body

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


@pytest.fixture
def client():
    return EdgeFunctionClient(BASE_URL, timeout=5)


@pytest.fixture
def posted(monkeypatch, client):
    """Capture session.post calls and answer with a configurable response."""
    calls = []
    state = {"response": FakeHttpResponse(200, {})}

    def fake_post(url, **kwargs):
        calls.append((url, kwargs))
        if isinstance(state["response"], Exception):
            raise state["response"]
        return state["response"]

    monkeypatch.setattr(client.session, "post", fake_post)
    return calls, state


class TestUploadExam:
    def test_multipart_with_bearer(self, client, posted):
        calls, state = posted
        state["response"] = FakeHttpResponse(200, {"submission_id": "sub-1"})

        sub_id = client.upload_exam("tok", b"%PDF", "prova.pdf", "application/pdf", "exam-1", " Ana ")

        assert sub_id == "sub-1"
        url, kwargs = calls[0]
        assert url == f"{BASE_URL}/upload-exam"
        assert kwargs["headers"] == {"Authorization": "Bearer tok"}
        assert kwargs["files"]["file"] == ("prova.pdf", b"%PDF", "application/pdf")
        assert kwargs["data"] == {"exam_id": "exam-1", "student_identifier": "Ana"}
        assert kwargs["timeout"] == 5

    def test_blank_student_identifier_omitted(self, client, posted):
        calls, state = posted
        state["response"] = FakeHttpResponse(200, {"submission_id": "sub-2"})
        client.upload_exam("tok", b"x", "a.png", "image/png", "exam-1", "   ")
        assert calls[0][1]["data"] == {"exam_id": "exam-1"}


class TestJsonFunctions:
    def test_analyze_exam(self, client, posted):
        calls, state = posted
        state["response"] = FakeHttpResponse(200, {"success": True, "total_score": 11})
        assert client.analyze_exam("tok", "sub-1") == 11
        assert calls[0][0].endswith("/analyze-exam")
        assert calls[0][1]["json"] == {"submission_id": "sub-1"}

    def test_generate_report(self, client, posted):
        calls, state = posted
        state["response"] = FakeHttpResponse(200, {"pdf_url": "https://x/report.pdf"})
        assert client.generate_report("tok", "res-1") == "https://x/report.pdf"
        assert calls[0][1]["json"] == {"result_id": "res-1"}


class TestErrors:
    def test_error_field_used_as_message(self, client, posted):
        _, state = posted
        state["response"] = FakeHttpResponse(403, {"error": "Not authorized for this exam"})
        with pytest.raises(EdgeFunctionError) as exc:
            client.analyze_exam("tok", "sub-1")
        assert str(exc.value) == "Not authorized for this exam"
        assert exc.value.status_code == 403

    def test_non_json_error(self, client, posted):
        _, state = posted
        state["response"] = FakeHttpResponse(500)
        with pytest.raises(EdgeFunctionError, match="HTTP 500"):
            client.generate_report("tok", "res-1")

    def test_connection_error(self, client, posted):
        _, state = posted
        state["response"] = requests.ConnectionError("refused")
        with pytest.raises(EdgeFunctionError, match="unreachable") as exc:
            client.analyze_exam("tok", "sub-1")
        assert exc.value.status_code is None

    def test_missing_base_url(self):
        with pytest.raises(EdgeFunctionError, match="not configured"):
            EdgeFunctionClient("").analyze_exam("tok", "sub-1")
