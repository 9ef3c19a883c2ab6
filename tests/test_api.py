import pytest
from fastapi.testclient import TestClient

import cinegenius.api as api_module
from cinegenius.api import app, build_orchestrator, get_orchestrator
from cinegenius.core.errors import EmptyInput, MalformedOutput, TransportFailure
from cinegenius.core.models import Attachment, Shot


@pytest.fixture
def client(fake_orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: lambda: fake_orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestProxyEndpoint:
    def test_parse_script_returns_camel_case_artifact(self, client, fake_orchestrator, sample_analysis):
        fake_orchestrator.parse_script.return_value = sample_analysis

        response = client.post("/api/proxy", json={
            "action": "parseScript",
            "payload": {"content": "FADE IN:", "language": "German"},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "The Last Reel"
        assert body["scenes"][0]["sceneNumber"] == 1
        fake_orchestrator.parse_script.assert_awaited_once_with("FADE IN:", "German")

    def test_parse_script_with_file_payload(self, client, fake_orchestrator, sample_analysis):
        fake_orchestrator.parse_script.return_value = sample_analysis

        response = client.post("/api/proxy", json={
            "action": "parseScript",
            "payload": {"content": {"data": "JVBERi0=", "mimeType": "application/pdf"}},
        })

        assert response.status_code == 200
        content, language = fake_orchestrator.parse_script.call_args.args
        assert isinstance(content, Attachment)
        assert content.mime_type == "application/pdf"

    def test_shot_list(self, client, fake_orchestrator, sample_analysis):
        fake_orchestrator.generate_shot_list.return_value = [
            Shot(shot_number=1, shot_type="Wide", lens="24mm", description="Lobby")
        ]

        response = client.post("/api/proxy", json={
            "action": "generateShotList",
            "payload": {"scene": sample_analysis.scenes[0].to_wire(), "language": "English"},
        })

        assert response.status_code == 200
        assert response.json() == [{"shotNumber": 1, "shotType": "Wide", "lens": "24mm",
                                     "description": "Lobby", "isLoadingImage": False}]

    def test_image_returns_data_url(self, client, fake_orchestrator, sample_analysis):
        fake_orchestrator.generate_image_for_shot.return_value = "data:image/jpeg;base64,aW1n"
        shot = {"shotNumber": 1, "shotType": "Wide", "lens": "24mm", "description": "Lobby"}

        response = client.post("/api/proxy", json={
            "action": "generateImageForShot",
            "payload": {"shot": shot, "scene": sample_analysis.scenes[0].to_wire()},
        })

        assert response.status_code == 200
        assert response.json() == "data:image/jpeg;base64,aW1n"

    def test_ask_question(self, client, fake_orchestrator, sample_analysis):
        fake_orchestrator.ask_script_question.return_value = "Scenes 1 and 2."

        response = client.post("/api/proxy", json={
            "action": "askScriptQuestion",
            "payload": {"analysis": sample_analysis.to_wire(), "question": "Where is Maya?"},
        })

        assert response.status_code == 200
        assert response.json() == "Scenes 1 and 2."

    def test_unknown_action(self, client):
        response = client.post("/api/proxy", json={"action": "makeCoffee", "payload": {}})

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid action: makeCoffee"}

    def test_invalid_payload(self, client, fake_orchestrator):
        response = client.post("/api/proxy", json={"action": "generateSchedule", "payload": {"analysis": "nope"}})

        assert response.status_code == 400
        assert "generateSchedule" in response.json()["message"]
        fake_orchestrator.generate_schedule.assert_not_called()

    def test_empty_input_is_client_error(self, client, fake_orchestrator, sample_analysis):
        fake_orchestrator.ask_script_question.side_effect = EmptyInput("The question must not be empty.")

        response = client.post("/api/proxy", json={
            "action": "askScriptQuestion",
            "payload": {"analysis": sample_analysis.to_wire(), "question": " "},
        })

        assert response.status_code == 400
        assert response.json() == {"message": "The question must not be empty."}

    @pytest.mark.parametrize("error", [
        TransportFailure("The request to the AI service failed for scheduling: timeout"),
        MalformedOutput("The AI returned an invalid format for scheduling."),
    ])
    def test_generation_failure_is_server_error(self, client, fake_orchestrator, sample_analysis, error):
        fake_orchestrator.generate_schedule.side_effect = error

        response = client.post("/api/proxy", json={
            "action": "generateSchedule",
            "payload": {"analysis": sample_analysis.to_wire()},
        })

        assert response.status_code == 500
        assert response.json() == {"message": str(error)}

    def test_method_not_allowed(self, client):
        response = client.get("/api/proxy")

        assert response.status_code == 405
        assert "message" in response.json()

    def test_malformed_body(self, client):
        response = client.post("/api/proxy", json=["not", "an", "object"])

        assert response.status_code == 400
        assert "message" in response.json()

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "healthy"}


class TestMissingConfiguration:
    @pytest.fixture
    def unconfigured_client(self, monkeypatch):
        monkeypatch.setattr(api_module.Config, "GEMINI_API_KEY", None)
        build_orchestrator.cache_clear()
        yield TestClient(app)
        build_orchestrator.cache_clear()

    def test_unknown_action_is_still_client_error(self, unconfigured_client):
        response = unconfigured_client.post("/api/proxy", json={"action": "nope"})

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid action: nope"}

    def test_missing_api_key_is_reported_as_message(self, unconfigured_client, sample_analysis):
        response = unconfigured_client.post("/api/proxy", json={
            "action": "generateSchedule",
            "payload": {"analysis": sample_analysis.to_wire()},
        })

        assert response.status_code == 500
        assert response.json() == {"message": "GEMINI_API_KEY environment variable is not set."}
