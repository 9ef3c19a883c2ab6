import pytest
from typing import List
from unittest.mock import AsyncMock, MagicMock

from cinegenius.core.ai_client import GenAIClient
from cinegenius.core.errors import EmptyOutput, TransportFailure
from cinegenius.core.models import Attachment, ScheduleDay
from cinegenius.core.schemas import TaskKind


@pytest.fixture
def ai_client(mock_genai_client):
    return GenAIClient()


@pytest.fixture
def models(mock_genai_client):
    """The async models namespace on the mocked SDK client."""
    return mock_genai_client.return_value.aio.models


class TestGenAIClient:
    @pytest.mark.asyncio
    async def test_generate_text(self, ai_client, models, text_response):
        models.generate_content = AsyncMock(return_value=text_response("Generated text"))

        text = await ai_client.invoke(TaskKind.ASK_QUESTION, "Be helpful.", "Who is Maya?")

        assert text == "Generated text"
        models.generate_content.assert_called_once()
        args, kwargs = models.generate_content.call_args
        assert kwargs['model'] == ai_client.text_model_name
        assert kwargs['contents'] == ["Who is Maya?"]
        assert kwargs['config']['system_instruction'] == "Be helpful."
        # Free-text answers carry no schema
        assert 'response_schema' not in kwargs['config']

    @pytest.mark.asyncio
    async def test_generate_text_with_schema(self, ai_client, models, text_response):
        models.generate_content = AsyncMock(return_value=text_response('[{"day": 1}]'))

        text = await ai_client.invoke(TaskKind.GENERATE_SCHEDULE, "Schedule it.", "scenes")

        assert text == '[{"day": 1}]'
        args, kwargs = models.generate_content.call_args
        assert kwargs['config']['response_mime_type'] == 'application/json'
        assert kwargs['config']['response_schema'] == List[ScheduleDay]

    @pytest.mark.asyncio
    async def test_attachment_is_sent_as_inline_bytes(self, ai_client, models, text_response):
        models.generate_content = AsyncMock(return_value=text_response("{}"))
        attachment = Attachment(data="c2NyaXB0", mime_type="application/pdf")

        await ai_client.invoke(TaskKind.PARSE_SCRIPT, "Analyze.", [attachment, "Analyze the attached file."])

        args, kwargs = models.generate_content.call_args
        part = kwargs['contents'][0]
        assert part.inline_data.data == b"script"
        assert part.inline_data.mime_type == "application/pdf"
        assert kwargs['contents'][1] == "Analyze the attached file."

    @pytest.mark.asyncio
    async def test_generate_text_exception(self, ai_client, models):
        models.generate_content = AsyncMock(side_effect=Exception("API Error"))

        with pytest.raises(TransportFailure, match="API Error") as exc_info:
            await ai_client.invoke(TaskKind.GENERATE_SHOT_LIST, "Shots.", "scene")
        assert exc_info.value.task == "the shot list"

    @pytest.mark.asyncio
    async def test_blocked_prompt_is_transport_failure(self, ai_client, models, text_response):
        response = text_response(None)
        response.prompt_feedback = MagicMock(block_reason="SAFETY")
        models.generate_content = AsyncMock(return_value=response)

        with pytest.raises(TransportFailure, match="blocked"):
            await ai_client.invoke(TaskKind.PARSE_SCRIPT, "Analyze.", "FADE IN:")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [None, "", "   \n"])
    async def test_empty_text_is_empty_output(self, ai_client, models, text_response, text):
        models.generate_content = AsyncMock(return_value=text_response(text))

        with pytest.raises(EmptyOutput, match="script analysis"):
            await ai_client.invoke(TaskKind.PARSE_SCRIPT, "Analyze.", "FADE IN:")

    @pytest.mark.asyncio
    async def test_generate_image_with_imagen(self, ai_client, models):
        ai_client.image_model_name = "imagen-3.0-generate-002"
        generated = MagicMock()
        generated.image.image_bytes = b"img"
        generated.image.mime_type = "image/jpeg"
        response = MagicMock()
        response.generated_images = [generated]
        models.generate_images = AsyncMock(return_value=response)

        url = await ai_client.invoke(TaskKind.GENERATE_IMAGE, "", "cinematic film still", expects_image=True)

        assert url == "data:image/jpeg;base64,aW1n"
        args, kwargs = models.generate_images.call_args
        assert kwargs['model'] == "imagen-3.0-generate-002"
        assert kwargs['prompt'] == "cinematic film still"
        assert kwargs['config'].number_of_images == 1
        assert kwargs['config'].aspect_ratio == "16:9"

    @pytest.mark.asyncio
    async def test_generate_image_no_images_returned(self, ai_client, models):
        ai_client.image_model_name = "imagen-3.0-generate-002"
        response = MagicMock()
        response.generated_images = []
        models.generate_images = AsyncMock(return_value=response)

        with pytest.raises(EmptyOutput, match="safety policies"):
            await ai_client.generate_image("prompt")

    @pytest.mark.asyncio
    async def test_generate_image_with_gemini_model(self, ai_client, models):
        ai_client.image_model_name = "gemini-2.5-flash-image"
        part = MagicMock()
        part.inline_data.data = b"png"
        part.inline_data.mime_type = "image/png"
        response = MagicMock()
        response.parts = [part]
        models.generate_content = AsyncMock(return_value=response)

        url = await ai_client.generate_image("prompt")

        assert url == "data:image/png;base64,cG5n"
        args, kwargs = models.generate_content.call_args
        assert kwargs['model'] == "gemini-2.5-flash-image"
        assert "response_modalities" in kwargs['config'].model_dump()

    @pytest.mark.asyncio
    async def test_generate_image_exception(self, ai_client, models):
        ai_client.image_model_name = "imagen-3.0-generate-002"
        models.generate_images = AsyncMock(side_effect=Exception("Gen Error"))

        with pytest.raises(TransportFailure, match="Gen Error"):
            await ai_client.generate_image("prompt")

    @pytest.mark.asyncio
    async def test_image_task_requires_text_prompt(self, ai_client):
        with pytest.raises(TypeError):
            await ai_client.invoke(TaskKind.GENERATE_IMAGE, "", [Attachment(data="", mime_type="image/png")], expects_image=True)
