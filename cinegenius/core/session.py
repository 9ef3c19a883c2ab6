import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Dict, List, Optional, Set

from cinegenius.core.cache import Conversation, ResultCache
from cinegenius.core.errors import EmptyInput, GenerationError, InvalidInput
from cinegenius.core.models import (
    IMAGE_ERROR_SENTINEL,
    Attachment,
    ContinuityAnalysis,
    ConversationTurn,
    Language,
    ProductionBible,
    ScheduleDay,
    Scene,
    ScriptAnalysis,
    Shot,
)
from cinegenius.core.orchestrator import ScriptOrchestrator
from cinegenius.core.schemas import TaskKind, get_spec

logger = logging.getLogger(__name__)

SCHEDULE_KEY = "schedule"
CONTINUITY_KEY = "continuity"


class TaskState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ProductionSession:
    """
    Session state for one script: the root analysis plus every artifact derived from it.

    Artifacts are generated at most once per key until invalidated (``force=True``)
    or discarded by ``reset``. Each task kind keeps its own status and last error
    so one failing panel never disturbs the others.
    """

    def __init__(self, orchestrator: ScriptOrchestrator, language: Language = "English"):
        self.orchestrator = orchestrator
        self.language = language
        self.analysis: Optional[ScriptAnalysis] = None

        self.schedule_cache: ResultCache[str, List[ScheduleDay]] = ResultCache("schedule", single_slot=True)
        self.shots_cache: ResultCache[int, List[Shot]] = ResultCache("shot list", single_slot=True)
        self.guide_cache: ResultCache[int, ProductionBible] = ResultCache("production guide")
        self.continuity_cache: ResultCache[str, ContinuityAnalysis] = ResultCache("continuity", single_slot=True)
        self.conversation = Conversation()

        self.status: Dict[TaskKind, TaskState] = {}
        self.errors: Dict[TaskKind, str] = {}
        self._epoch = 0
        self._image_tasks: Dict[int, asyncio.Task] = {}
        self._background_tasks: Set[asyncio.Task] = set()
        self._reset_status()

    # -- script analysis -------------------------------------------------

    async def analyze_script(self, text: Optional[str] = None, attachment: Optional[Attachment] = None) -> ScriptAnalysis:
        label = get_spec(TaskKind.PARSE_SCRIPT).label
        has_text = bool(text and text.strip())
        if has_text and attachment is not None:
            raise InvalidInput("Provide the script either as text or as a file, not both.", task=label)
        if not has_text and attachment is None:
            raise EmptyInput("A script must be provided either as text or as a file.", task=label)

        content = attachment if attachment is not None else text
        epoch = self._epoch
        async with self._track(TaskKind.PARSE_SCRIPT):
            analysis = await self.orchestrator.parse_script(content, self.language)

        if epoch != self._epoch:
            logger.info("Discarding script analysis that finished after a reset")
            return analysis

        # A new root artifact makes every derived artifact stale
        self._discard_artifacts()
        self.analysis = analysis
        logger.info(f"Analyzed '{analysis.title}': {len(analysis.scenes)} scenes, {len(analysis.characters)} characters")
        return analysis

    # -- derived artifacts -----------------------------------------------

    async def get_schedule(self, force: bool = False) -> List[ScheduleDay]:
        analysis = self._require_analysis(TaskKind.GENERATE_SCHEDULE)
        if force:
            self.schedule_cache.invalidate(SCHEDULE_KEY)
        return await self._generate_once(
            TaskKind.GENERATE_SCHEDULE,
            self.schedule_cache,
            SCHEDULE_KEY,
            lambda: self.orchestrator.generate_schedule(analysis, self.language),
        )

    async def get_production_guide(self, scene_number: int, force: bool = False) -> ProductionBible:
        scene = self._require_scene(TaskKind.GENERATE_PRODUCTION_GUIDE, scene_number)
        if force:
            self.guide_cache.invalidate(scene_number)
        return await self._generate_once(
            TaskKind.GENERATE_PRODUCTION_GUIDE,
            self.guide_cache,
            scene_number,
            lambda: self.orchestrator.generate_scene_production_guide(scene, self.language),
        )

    async def get_continuity_report(self, force: bool = False) -> ContinuityAnalysis:
        analysis = self._require_analysis(TaskKind.GENERATE_CONTINUITY_REPORT)
        if force:
            self.continuity_cache.invalidate(CONTINUITY_KEY)
        return await self._generate_once(
            TaskKind.GENERATE_CONTINUITY_REPORT,
            self.continuity_cache,
            CONTINUITY_KEY,
            lambda: self.orchestrator.generate_continuity_report(analysis, self.language),
        )

    async def get_shot_list(self, scene_number: int, force: bool = False) -> List[Shot]:
        """
        Returns the storyboard for a scene.

        A freshly generated list comes back immediately with every shot marked
        as loading; one image task per shot is started in the background and
        fills in that shot's ``image_url`` when it finishes.
        """
        scene = self._require_scene(TaskKind.GENERATE_SHOT_LIST, scene_number)
        if force:
            self.shots_cache.invalidate(scene_number)
        epoch = self.shots_cache.epoch
        return await self._generate_once(
            TaskKind.GENERATE_SHOT_LIST,
            self.shots_cache,
            scene_number,
            lambda: self._create_storyboard(scene, epoch),
        )

    async def wait_for_images(self):
        """Waits for every in-flight storyboard frame; one failed task never hides the others."""
        await asyncio.gather(*self._image_tasks.values(), return_exceptions=True)

    async def _create_storyboard(self, scene: Scene, epoch: int) -> List[Shot]:
        shots = await self.orchestrator.generate_shot_list(scene, self.language)
        for shot in shots:
            shot.is_loading_image = True

        if epoch != self.shots_cache.epoch:
            logger.info(f"Not rendering frames for scene {scene.scene_number}: session was reset")
            return shots

        self._image_tasks = {}
        for shot in shots:
            task = asyncio.create_task(self._render_shot(scene, shot, shots, epoch))
            self._image_tasks[shot.shot_number] = task
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)
        return shots

    async def _render_shot(self, scene: Scene, shot: Shot, shots: List[Shot], epoch: int):
        image_url = IMAGE_ERROR_SENTINEL
        try:
            image_url = await self.orchestrator.generate_image_for_shot(shot, scene)
        except Exception as e:
            # Any failure only costs this one frame
            logger.error(f"Failed to generate image for shot {shot.shot_number}: {e}")
        finally:
            if self._is_current_storyboard(scene.scene_number, shots, epoch):
                shot.image_url = image_url
                shot.is_loading_image = False
            else:
                logger.info(f"Dropping image for shot {shot.shot_number}: storyboard was replaced")

    def _is_current_storyboard(self, scene_number: int, shots: List[Shot], epoch: int) -> bool:
        return self.shots_cache.epoch == epoch and self.shots_cache.get(scene_number) is shots

    # -- Q&A ---------------------------------------------------------------

    async def ask(self, question: str) -> str:
        """
        Asks the assistant a question about the analyzed script.

        The user turn and a pending placeholder are appended right away; the
        placeholder is later replaced by the answer, or by an apology carrying
        the error message when the request fails (the error is re-raised).
        """
        label = get_spec(TaskKind.ASK_QUESTION).label
        if not question or not question.strip():
            raise EmptyInput("The question must not be empty.", task=label)
        analysis = self._require_analysis(TaskKind.ASK_QUESTION)

        epoch = self.conversation.epoch
        self.conversation.append("user", question)
        pending = self.conversation.begin_pending()

        try:
            async with self._track(TaskKind.ASK_QUESTION):
                answer = await self.orchestrator.ask_script_question(analysis, question, self.language)
        except GenerationError as e:
            self.conversation.resolve(pending.id, f"Sorry, I encountered an error: {e}", epoch=epoch)
            raise

        self.conversation.resolve(pending.id, answer, epoch=epoch)
        return answer

    @property
    def turns(self) -> List[ConversationTurn]:
        return self.conversation.turns

    # -- reset -------------------------------------------------------------

    def reset(self):
        """Drops the analysis and every cached artifact; in-flight requests keep running but cannot write back."""
        self._epoch += 1
        self.analysis = None
        self._discard_artifacts()
        self._reset_status()
        logger.info("Session reset")

    def _discard_artifacts(self):
        for cache in (self.schedule_cache, self.shots_cache, self.guide_cache, self.continuity_cache):
            cache.clear()
        self.conversation.clear()
        self._image_tasks = {}

    def _reset_status(self):
        self.status = {kind: TaskState.IDLE for kind in TaskKind}
        self.errors = {}

    # -- helpers -----------------------------------------------------------

    async def _generate_once(self, kind: TaskKind, cache: ResultCache, key, factory):
        cached = cache.get(key)
        if cached is not None:
            return cached
        async with self._track(kind):
            return await cache.get_or_create(key, factory)

    @asynccontextmanager
    async def _track(self, kind: TaskKind):
        epoch = self._epoch
        self.status[kind] = TaskState.REQUESTING
        self.errors.pop(kind, None)
        try:
            yield
        except Exception as e:
            if epoch == self._epoch:
                self.status[kind] = TaskState.FAILED
                if isinstance(e, GenerationError):
                    self.errors[kind] = str(e)
            raise
        if epoch == self._epoch:
            self.status[kind] = TaskState.SUCCEEDED

    def _require_analysis(self, kind: TaskKind) -> ScriptAnalysis:
        if self.analysis is None:
            raise InvalidInput("Analyze a script first.", task=get_spec(kind).label)
        return self.analysis

    def _require_scene(self, kind: TaskKind, scene_number: int) -> Scene:
        scene = self._require_analysis(kind).find_scene(scene_number)
        if scene is None:
            raise InvalidInput(f"Scene {scene_number} is not part of the analyzed script.", task=get_spec(kind).label)
        return scene
