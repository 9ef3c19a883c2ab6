from google import genai
from google.genai import types
import base64
import logging
from typing import Any, List, Optional, Union

from cinegenius.config import Config
from cinegenius.core.errors import EmptyOutput, TransportFailure
from cinegenius.core.models import Attachment
from cinegenius.core.schemas import TaskKind, get_spec

logger = logging.getLogger(__name__)

Payload = Union[str, Attachment, List[Union[str, Attachment]]]


class GenAIClient:
    """
    Uniform async entry point to Gemini for every task kind.

    One call to ``invoke`` is exactly one outbound request; nothing is retried
    here. Any exception raised by the SDK surfaces as ``TransportFailure``.
    """

    def __init__(self):
        self.client = genai.Client(api_key=Config.GEMINI_API_KEY)
        self.text_model_name = Config.TEXT_MODEL_NAME
        self.image_model_name = Config.IMAGE_MODEL_NAME

    async def invoke(self, kind: TaskKind, instruction: str, payload: Payload, expects_image: bool = False) -> str:
        """
        Runs one generation request for a task.

        Args:
            kind: The task kind; selects the registered output schema and label.
            instruction: Task-specific instruction. For text tasks it is sent as
                the system instruction; for image tasks it is ignored and the
                payload is the prompt.
            payload: Plain text, an attachment, or a list mixing both.
            expects_image: True for the image task.

        Returns:
            Raw response text, or a ``data:`` URL for image tasks.
        """
        spec = get_spec(kind)
        if expects_image:
            return await self.generate_image(self._as_prompt(payload), task=spec.label)
        return await self.generate_text(instruction, payload, schema=spec.schema, task=spec.label)

    async def generate_text(self, system_instruction: str, payload: Payload, schema: Optional[Any] = None, task: str = "text generation") -> str:
        config_args = {'system_instruction': system_instruction}
        if schema is not None:
            config_args['response_mime_type'] = 'application/json'
            config_args['response_schema'] = schema

        logger.info(f"Requesting {task} from {self.text_model_name}")
        try:
            response = await self.client.aio.models.generate_content(
                model=self.text_model_name,
                contents=self._build_contents(payload),
                config=config_args
            )
        except Exception as e:
            logger.error(f"Error generating text for {task}: {e}")
            raise TransportFailure(f"The request to the AI service failed for {task}: {e}", task=task) from e

        self._raise_if_blocked(response, task)

        text = response.text
        if not text or not text.strip():
            raise EmptyOutput.for_task(task)
        return text

    async def generate_image(self, prompt: str, task: str = "the shot image") -> str:
        """
        Generates one storyboard frame and returns it as a data URL.

        Imagen models go through ``generate_images``; Gemini image models go
        through ``generate_content`` with an IMAGE response modality.
        """
        logger.info(f"Generating image with model {self.image_model_name}")
        try:
            if self.image_model_name.startswith("imagen"):
                image_bytes, mime_type = await self._generate_with_imagen(prompt)
            else:
                image_bytes, mime_type = await self._generate_with_gemini(prompt)
        except Exception as e:
            logger.error(f"Error generating image: {e}")
            raise TransportFailure(f"The request to the AI service failed for {task}: {e}", task=task) from e

        if not image_bytes:
            # Imagen answers with zero images when the safety filter drops them
            raise EmptyOutput(
                "Image generation failed. The prompt may have been blocked by safety policies "
                "or the service is temporarily unavailable.",
                task=task,
            )

        encoded = base64.b64encode(image_bytes).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    async def _generate_with_imagen(self, prompt: str):
        response = await self.client.aio.models.generate_images(
            model=self.image_model_name,
            prompt=prompt,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                output_mime_type=Config.IMAGE_MIME_TYPE,
                aspect_ratio=Config.IMAGE_ASPECT_RATIO,
            )
        )
        if response.generated_images:
            image = response.generated_images[0].image
            if image is not None and image.image_bytes:
                return image.image_bytes, image.mime_type or Config.IMAGE_MIME_TYPE
        return None, None

    async def _generate_with_gemini(self, prompt: str):
        response = await self.client.aio.models.generate_content(
            model=self.image_model_name,
            contents=[prompt],
            config=types.GenerateContentConfig(
                response_modalities=['IMAGE'],
                image_config=types.ImageConfig(
                    aspect_ratio=Config.IMAGE_ASPECT_RATIO,
                ),
            )
        )
        for part in response.parts or []:
            if part.inline_data is not None and part.inline_data.data:
                return part.inline_data.data, part.inline_data.mime_type or "image/png"
        return None, None

    def _build_contents(self, payload: Payload) -> List[Any]:
        items = payload if isinstance(payload, list) else [payload]
        contents = []
        for item in items:
            if isinstance(item, Attachment):
                contents.append(types.Part.from_bytes(data=base64.b64decode(item.data), mime_type=item.mime_type))
            else:
                contents.append(item)
        return contents

    @staticmethod
    def _as_prompt(payload: Payload) -> str:
        if isinstance(payload, str):
            return payload
        raise TypeError("Image generation expects a plain text prompt.")

    @staticmethod
    def _raise_if_blocked(response, task: str):
        feedback = getattr(response, 'prompt_feedback', None)
        block_reason = getattr(feedback, 'block_reason', None) if feedback is not None else None
        if block_reason:
            logger.error(f"Request for {task} was blocked: {block_reason}")
            raise TransportFailure(f"The request for {task} was blocked by the AI service ({block_reason}).", task=task)
