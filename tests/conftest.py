import pytest
from unittest.mock import AsyncMock, MagicMock
import sys
import os

# Add project root to sys.path so we can import cinegenius
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cinegenius.core.models import Character, Scene, ScriptAnalysis


@pytest.fixture
def mock_genai_client(mocker):
    """Fixture to mock the Google GenAI Client."""
    mock_client = mocker.patch('google.genai.Client')
    return mock_client


@pytest.fixture
def mock_env(monkeypatch):
    """Fixture to mock environment variables."""
    monkeypatch.setenv("GEMINI_API_KEY", "fake_key")
    monkeypatch.setenv("TEXT_MODEL_NAME", "gemini-test-model")


@pytest.fixture
def text_response():
    """Builds a fake generate_content response carrying the given text."""
    def _make(text):
        response = MagicMock()
        response.text = text
        response.prompt_feedback = None
        return response
    return _make


@pytest.fixture
def sample_analysis():
    return ScriptAnalysis(
        title="The Last Reel",
        logline="A projectionist fights to save the town's last cinema.",
        scenes=[
            Scene(scene_number=1, setting="INT. CINEMA LOBBY", time_of_day="NIGHT",
                  summary="Maya counts the night's takings.", characters=["Maya"],
                  locations="Cinema", pages="1 1/8"),
            Scene(scene_number=2, setting="INT. PROJECTION BOOTH", time_of_day="NIGHT",
                  summary="Maya and Leo argue over the old projector.", characters=["Maya", "Leo"],
                  locations="Cinema", pages="2"),
            Scene(scene_number=3, setting="EXT. MAIN STREET", time_of_day="DAY",
                  summary="Leo hands out flyers.", characters=["Leo"],
                  locations="Main Street", pages="4/8"),
        ],
        characters=[
            Character(name="Maya", description="Projectionist in her forties."),
            Character(name="Leo", description="Her restless nephew."),
        ],
    )


@pytest.fixture
def fake_orchestrator():
    """An orchestrator double whose task coroutines are AsyncMocks."""
    orchestrator = MagicMock()
    for name in (
        "parse_script",
        "generate_schedule",
        "generate_shot_list",
        "generate_image_for_shot",
        "generate_scene_production_guide",
        "generate_continuity_report",
        "ask_script_question",
    ):
        setattr(orchestrator, name, AsyncMock())
    return orchestrator
