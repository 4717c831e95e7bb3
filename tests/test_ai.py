"""
Pairing advisor tests (httpx.MockTransport, no network).
"""

import json

import httpx
import pytest

from common.exceptions import ExternalServiceError, ValidationError
from conftest import ChatHandler, auth_headers, make_user
from modules.ai.service import GENERIC_ERROR, PairingAdvisor, split_lines


def _advisor(handler, api_key="sk-test"):
    return PairingAdvisor(api_key=api_key, client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestSplitLines:

    def test_strips_markers_and_blanks(self):
        text = "1. Garlic Naan\n\n2) Jeera Rice\n- Mango Lassi\n* Raita"
        assert split_lines(text) == ["Garlic Naan", "Jeera Rice", "Mango Lassi", "Raita"]
        assert split_lines(text, limit=3) == ["Garlic Naan", "Jeera Rice", "Mango Lassi"]


class TestPairingAdvisor:

    def test_suggest_pairings(self):
        handler = ChatHandler("1. Garlic Naan\n2. Jeera Rice\n3. Mango Lassi\n4. Raita")
        result = _advisor(handler).suggest_pairings("Butter Chicken", "Indian")

        assert result == ["Garlic Naan", "Jeera Rice", "Mango Lassi"]
        sent = json.loads(handler.requests[0].content)
        assert sent["model"] == "gpt-3.5-turbo"
        assert "Butter Chicken" in sent["messages"][1]["content"]
        assert handler.requests[0].headers["Authorization"] == "Bearer sk-test"

    def test_describe_dish(self):
        handler = ChatHandler("  Creamy, smoky and rich.  ")
        assert _advisor(handler).describe_dish("Butter Chicken", ["chicken", "butter"]) == "Creamy, smoky and rich."

    def test_cooking_tips(self):
        handler = ChatHandler("- Marinate overnight\n- Use ghee\n- Finish with cream")
        assert len(_advisor(handler).cooking_tips("Butter Chicken")) == 3

    def test_http_error_is_generic(self):
        with pytest.raises(ExternalServiceError) as exc:
            _advisor(ChatHandler(status_code=500)).suggest_pairings("Dal", "Indian")
        assert exc.value.message == GENERIC_ERROR
        assert "quota" not in exc.value.message

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ExternalServiceError):
            _advisor(handler).suggest_pairings("Dal", "Indian")

    def test_malformed_response(self):
        def handler(request):
            return httpx.Response(200, json={"choices": []})

        with pytest.raises(ExternalServiceError):
            _advisor(handler).suggest_pairings("Dal", "Indian")

    def test_missing_api_key(self):
        handler = ChatHandler()
        with pytest.raises(ExternalServiceError):
            _advisor(handler, api_key="").suggest_pairings("Dal", "Indian")
        assert handler.requests == []

    def test_blank_dish_name(self):
        with pytest.raises(ValidationError):
            _advisor(ChatHandler()).suggest_pairings("  ", "Indian")


class TestAIRoutes:

    def test_pairings_endpoint(self, client):
        resp = client.post("/api/ai/pairings", json={"dish_name": "Butter Chicken", "cuisine": "Indian"})
        assert resp.status_code == 200
        assert resp.json() == {"result": ["Garlic Naan", "Jeera Rice", "Mango Lassi"]}

    def test_pairings_failure_is_502(self, client, chat):
        chat.status_code = 503
        resp = client.post("/api/ai/pairings", json={"dish_name": "Butter Chicken", "cuisine": "Indian"})
        assert resp.status_code == 502
        assert resp.json()["detail"] == GENERIC_ERROR

    def test_describe_requires_admin(self, client, db):
        make_user(db)
        make_user(db, "admin-1", is_admin=True)
        body = {"dish_name": "Dal Tadka", "ingredients": ["lentils"]}

        assert client.post("/api/admin/ai/describe", json=body, headers=auth_headers()).status_code == 403
        assert client.post("/api/admin/ai/describe", json=body, headers=auth_headers("admin-1")).status_code == 200
