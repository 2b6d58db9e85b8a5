import httpx
import pytest

from fakes import PASSING, make_image
from intake.core.errors import AnalysisFailed, FetchFailed, SubmissionFailed
from intake.services.analysis import analyze
from intake.services.backend_client import HttpStudentBackend, birth_year_from

BASE = "https://backend.test"

def backend_for(handler) -> HttpStudentBackend:
    return HttpStudentBackend("tok-123", base_url=BASE, transport=httpx.MockTransport(handler))

class TestBirthYearFrom:
    def test_iso_date(self):
        assert birth_year_from("2001-05-03T00:00:00.000Z") == "2001"

    def test_bare_year(self):
        assert birth_year_from("1999") == "1999"
        assert birth_year_from(1999) == "1999"

    def test_missing_or_garbage(self):
        assert birth_year_from(None) is None
        assert birth_year_from("") is None
        assert birth_year_from("n/a") is None

class TestFetchStudent:
    async def test_maps_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["path"] = request.url.path
            seen["query"] = request.url.params["query"]
            return httpx.Response(200, json={
                "name": "Noor Ali",
                "section": "Computer Science",
                "studyType": "Evening",
                "birthDate": "2002-01-15",
                "imageUrl": "https://cdn.test/E1.jpg",
                "symbol": "A77",
            })

        record = await backend_for(handler).fetch_student("E1")

        assert seen == {"auth": "Bearer tok-123", "path": "/student/search", "query": "E1"}
        assert record.exam_code == "E1"
        assert record.department == "Computer Science"
        assert record.study_type == "Evening"
        assert record.birth_year == "2002"
        assert record.photo_url == "https://cdn.test/E1.jpg"
        assert record.symbol == "A77"
        assert record.is_complete
        assert record.analysis.passed

    async def test_defaults_for_missing_fields(self):
        record = await backend_for(lambda r: httpx.Response(200, json={})).fetch_student("E1")
        assert record.name == "Unknown"
        assert record.department == "Unspecified"
        assert record.birth_year is None
        assert record.photo_url is None
        assert record.analysis is None
        assert not record.is_complete

    async def test_error_status(self):
        with pytest.raises(FetchFailed) as exc:
            await backend_for(lambda r: httpx.Response(404)).fetch_student("E1")
        assert exc.value.status_code == 404

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchFailed):
            await backend_for(handler).fetch_student("E1")

    async def test_non_object_body(self):
        with pytest.raises(FetchFailed):
            await backend_for(lambda r: httpx.Response(200, json=[1, 2])).fetch_student("E1")

class TestAnalyzeImage:
    async def test_posts_image(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = request.read()
            return httpx.Response(200, json=PASSING)

        verdict = await analyze(backend_for(handler), make_image("me.jpg", b"PIXELS"))

        assert verdict.passed
        assert seen["method"] == "POST"
        assert seen["path"] == "/student/analyze-image"
        assert b'name="image"; filename="me.jpg"' in seen["body"]
        assert b"PIXELS" in seen["body"]

    async def test_error_status(self):
        with pytest.raises(AnalysisFailed):
            await analyze(backend_for(lambda r: httpx.Response(500)), make_image())

    async def test_invalid_json(self):
        with pytest.raises(AnalysisFailed):
            await analyze(backend_for(lambda r: httpx.Response(200, text="<html>")), make_image())

    async def test_non_object_body(self):
        with pytest.raises(AnalysisFailed):
            await analyze(backend_for(lambda r: httpx.Response(200, json="ok")), make_image())

    async def test_malformed_fields_fail_checks(self):
        handler = lambda r: httpx.Response(200, json={"head_centered": "yes", "eyes_open": True})
        verdict = await analyze(backend_for(handler), make_image())
        assert not verdict.passed
        assert verdict.eyes_open
        assert not verdict.head_centered

class TestUpdateStudent:
    async def test_patches_multipart(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = request.read()
            return httpx.Response(200, text="not json at all")

        await backend_for(handler).update_student("E1", "2001", make_image("me.jpg", b"PIXELS"))

        assert seen["method"] == "PATCH"
        assert seen["path"] == "/student/update/E1"
        assert b'name="birthDate"' in seen["body"]
        assert b"2001" in seen["body"]
        assert b'name="image"; filename="me.jpg"' in seen["body"]

    async def test_exam_code_is_one_path_segment(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.raw_path))
            return httpx.Response(200)

        await backend_for(handler).update_student("../admin/E1001?x=1", "2001", make_image())

        assert seen == [("PATCH", b"/student/update/..%2Fadmin%2FE1001%3Fx%3D1")]

    async def test_server_error(self):
        handler = lambda r: httpx.Response(500, text="boom")
        with pytest.raises(SubmissionFailed) as exc:
            await backend_for(handler).update_student("E1", "2001", make_image())
        assert exc.value.status_code == 500
        assert "boom" in str(exc.value)
