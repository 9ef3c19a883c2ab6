import json
import logging
from typing import Any, List, Union

from cinegenius.core.ai_client import GenAIClient
from cinegenius.core.errors import EmptyInput, EmptyOutput, GenerationError
from cinegenius.core.models import (
    Attachment,
    ContinuityAnalysis,
    Language,
    ProductionBible,
    ScheduleDay,
    Scene,
    ScriptAnalysis,
    Shot,
)
from cinegenius.core.sanitizer import sanitize_shot_description
from cinegenius.core.schemas import TaskKind, get_spec
from cinegenius.core.validator import extract

logger = logging.getLogger(__name__)


class ScriptOrchestrator:
    """
    One coroutine per task kind.

    Each builds the task instruction and payload, makes a single call through
    the client and validates the result against the registered schema.
    Failures come out as ``GenerationError`` subclasses tagged with the task
    label; nothing is retried.
    """

    def __init__(self, ai_client: GenAIClient):
        self.ai_client = ai_client

    async def parse_script(self, content: Union[str, Attachment], language: Language = "English") -> ScriptAnalysis:
        label = get_spec(TaskKind.PARSE_SCRIPT).label
        if content is None or (isinstance(content, str) and not content.strip()):
            raise EmptyInput("A script must be provided either as text or as a file.", task=label)

        instruction = (
            "You are a professional script reader and first assistant director. Analyze the provided film script. "
            "Extract the title, a logline, a detailed breakdown of every scene, and a list of all characters. "
            f"Provide the entire response in {language}. Ensure the JSON output strictly adheres to the provided schema."
        )

        if isinstance(content, Attachment):
            payload = [content, f"Analyze the attached script file and extract the required information in {language}."]
        else:
            payload = content

        return await self._run_structured(TaskKind.PARSE_SCRIPT, instruction, payload)

    async def generate_schedule(self, analysis: ScriptAnalysis, language: Language = "English") -> List[ScheduleDay]:
        instruction = (
            "You are a 1st Assistant Director creating a shooting schedule. Based on the provided scene breakdown, "
            "create an efficient shooting schedule. Group scenes by location to minimize company moves. "
            "Aim for a reasonable number of pages per day (e.g., 3-5 pages). "
            f"Provide the entire response in {language}."
        )
        prompt = f"Create a schedule from this analysis:\n{_to_json(analysis.scenes)}"
        return await self._run_structured(TaskKind.GENERATE_SCHEDULE, instruction, prompt)

    async def generate_shot_list(self, scene: Scene, language: Language = "English") -> List[Shot]:
        instruction = (
            "You are a visionary film director and cinematographer. For the given scene, create a dynamic and "
            "visually interesting shot list. Suggest varied camera shots and appropriate lenses to tell the story "
            f"effectively. Provide the entire response in {language}."
        )
        prompt = (
            "Generate a shot list for this scene:\n"
            f"Setting: {scene.setting}, {scene.time_of_day}\n"
            f"Characters: {', '.join(scene.characters)}\n"
            f"Summary: {scene.summary}"
        )
        planned = await self._run_structured(TaskKind.GENERATE_SHOT_LIST, instruction, prompt)
        # Shots start without a frame; images are a separate task per shot
        return [Shot(**p.model_dump()) for p in planned]

    async def generate_image_for_shot(self, shot: Shot, scene: Scene) -> str:
        """Returns a data URL for one storyboard frame."""
        spec = get_spec(TaskKind.GENERATE_IMAGE)
        clean_description = sanitize_shot_description(shot.description, scene.characters)
        prompt = (
            f"cinematic film still of {clean_description}. Setting: {scene.setting}, {scene.time_of_day}. "
            f"Camera: {shot.shot_type}, {shot.lens}. Photorealistic with dramatic lighting."
        )
        try:
            return await self.ai_client.invoke(TaskKind.GENERATE_IMAGE, "", prompt, expects_image=True)
        except GenerationError as e:
            logger.error(f"Image generation failed for shot {shot.shot_number}: {e}")
            raise

    async def generate_scene_production_guide(self, scene: Scene, language: Language = "English") -> ProductionBible:
        instruction = (
            "You are a team of seasoned film industry professionals: a cinematographer, a production designer, "
            "a gaffer, and a costume designer. For the provided scene details, create a comprehensive production "
            "guide covering camera/lenses, art department props, lighting design, and costume concepts. "
            "Your suggestions should be creative, practical, and thematically consistent with the scene's summary "
            f"and characters. Provide the entire response in {language}."
        )
        prompt = (
            "Generate a production guide for the following scene:\n"
            f"- Scene Number: {scene.scene_number}\n"
            f"- Setting: {scene.setting}, {scene.time_of_day}\n"
            f"- Characters: {', '.join(scene.characters)}\n"
            f"- Summary: {scene.summary}"
        )
        return await self._run_structured(TaskKind.GENERATE_PRODUCTION_GUIDE, instruction, prompt)

    async def generate_continuity_report(self, analysis: ScriptAnalysis, language: Language = "English") -> ContinuityAnalysis:
        instruction = (
            "You are an expert script supervisor and film editor. Analyze the entire script breakdown provided. "
            "Your task is to identify continuity errors and potential editing problems.\n"
            "Focus on three areas:\n"
            "1. **Character Continuity**: Do characters appear or disappear between scenes illogically? "
            "Note any inconsistencies.\n"
            "2. **Costume Continuity**: Based on scene summaries and character actions, flag potential costume "
            "inconsistencies between consecutive scenes where a character appears. Assume a costume change only "
            "happens if the script implies it (e.g., time passes, character changes at home).\n"
            "3. **Editing Continuity**: From an editor's perspective, identify potential issues between scenes, "
            "such as jarring transitions, potential jump cuts, 'crossing the line' (180-degree rule) problems and "
            "mismatches in time or setting. Suggest solutions for these editing challenges.\n"
            "If there are no issues in an area, return an empty list for it.\n"
            f"Provide the entire response in {language}."
        )
        context = {
            "scenes": [s.to_wire() for s in analysis.scenes],
            "characters": [c.to_wire() for c in analysis.characters],
        }
        prompt = f"Analyze this script for continuity issues:\n{json.dumps(context, ensure_ascii=False)}"
        return await self._run_structured(TaskKind.GENERATE_CONTINUITY_REPORT, instruction, prompt)

    async def ask_script_question(self, analysis: ScriptAnalysis, question: str, language: Language = "English") -> str:
        label = get_spec(TaskKind.ASK_QUESTION).label
        if not question or not question.strip():
            raise EmptyInput("The question must not be empty.", task=label)

        instruction = (
            "You are an intelligent filmmaking assistant called CineGenius. The user has provided a script which has "
            "been analyzed into the following JSON data. Your task is to answer the user's questions based on this "
            "data. Be helpful, concise, and provide creative insights where appropriate. If a question cannot be "
            "answered from the data, state that clearly and politely. Answer in markdown format when it makes sense "
            f"(e.g., for lists). Respond in {language}.\n\n"
            f"Here is the script analysis data:\n{_to_json(analysis)}"
        )
        try:
            answer = await self.ai_client.invoke(TaskKind.ASK_QUESTION, instruction, question)
        except GenerationError as e:
            logger.error(f"Task '{label}' failed: {e}")
            raise
        answer = answer.strip() if answer else ""
        if not answer:
            raise EmptyOutput.for_task(label)
        return answer

    async def _run_structured(self, kind: TaskKind, instruction: str, payload: Any) -> Any:
        spec = get_spec(kind)
        try:
            raw_text = await self.ai_client.invoke(kind, instruction, payload)
            return extract(raw_text, spec.label, spec.schema)
        except GenerationError as e:
            if e.task is None:
                e.task = spec.label
            logger.error(f"Task '{spec.label}' failed: {e}")
            raise


def _to_json(value: Any) -> str:
    if isinstance(value, list):
        return json.dumps([v.to_wire() for v in value], ensure_ascii=False)
    return json.dumps(value.to_wire(), ensure_ascii=False)
