from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Language = Literal["English", "Spanish", "French", "German", "Japanese", "Chinese"]

# Reserved image reference for a shot whose frame could not be generated
IMAGE_ERROR_SENTINEL = "error"


class WireModel(BaseModel):
    """Base for every artifact: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class Character(WireModel):
    name: str = Field(description="Name of the character")
    description: str = Field(description="A brief description of the character.")


class Scene(WireModel):
    scene_number: int = Field(description="Scene number as printed in the script")
    setting: str = Field(description="e.g., INT. COFFEE SHOP")
    time_of_day: str = Field(description="e.g., DAY, NIGHT")
    summary: str = Field(description="Brief summary of the scene events")
    characters: List[str] = Field(description="Names of the characters present in the scene")
    locations: str = Field(description="The general location, e.g., 'Coffee Shop', 'John's Apartment'")
    pages: str = Field(description="Page count for the scene, e.g., '1 1/8'")


class ScriptAnalysis(WireModel):
    title: str = Field(description="The title of the movie script.")
    logline: str = Field(description="A one-sentence summary of the film.")
    scenes: List[Scene] = Field(description="Breakdown of every scene in script order")
    characters: List[Character] = Field(description="Every character in the script")

    def find_scene(self, scene_number: int) -> Optional[Scene]:
        for scene in self.scenes:
            if scene.scene_number == scene_number:
                return scene
        return None


class ScheduledScene(WireModel):
    scene_number: int
    setting: str
    summary: str
    pages: str


class ScheduleDay(WireModel):
    day: int = Field(description="Shoot day, starting at 1")
    date: str = Field(description="A fictional date for the shoot day, e.g., 'Monday, Oct 28th'")
    scenes: List[ScheduledScene] = Field(description="Scenes shot on this day")
    notes: str = Field(description="Notes for the day, like primary location. e.g., 'All scenes at the Coffee Shop location.'")


class PlannedShot(WireModel):
    """A shot as the backend plans it, before any frame exists."""

    shot_number: int
    shot_type: str = Field(description="e.g., Wide Shot, Medium Close-Up, POV")
    lens: str = Field(description="e.g., 24mm, 50mm, 85mm Anamorphic")
    description: str = Field(description="A detailed description of the action and framing in the shot.")


class Shot(PlannedShot):
    image_url: Optional[str] = Field(default=None, description="Data URL of the frame, or the error sentinel")
    is_loading_image: bool = Field(default=False, description="Set while the frame is being generated")

    @property
    def image_failed(self) -> bool:
        return self.image_url == IMAGE_ERROR_SENTINEL


class CameraSuggestion(WireModel):
    recommendation: str = Field(description="Specific equipment or technique, e.g., 'ARRI Alexa with Anamorphic Lenses'")
    reasoning: str = Field(description="Why this choice is suitable for the script's tone and story.")


class ArtSuggestion(WireModel):
    prop: str = Field(description="The name of the prop or set piece.")
    description: str = Field(description="Description and relevance to the story or characters.")


class LightingSuggestion(WireModel):
    setup: str = Field(description="e.g., 'High-key lighting', 'Motivated practicals'")
    mood: str = Field(description="The mood this lighting setup will create, e.g., 'Optimistic', 'Tense', 'Mysterious'")
    details: str = Field(description="Further details on implementation or specific scenes.")


class CostumeSuggestion(WireModel):
    character: str
    costume: str = Field(description="Description of the costume.")
    inspiration: str = Field(description="Inspiration or reference for the costume's style.")


class ProductionBible(WireModel):
    camera: List[CameraSuggestion] = Field(description="Suggestions for camera, lenses, and general cinematographic approach.")
    art: List[ArtSuggestion] = Field(description="Key props and set dressing suggestions.")
    lighting: List[LightingSuggestion] = Field(description="Lighting design ideas for the scene.")
    costumes: List[CostumeSuggestion] = Field(description="Costume concepts for the characters in the scene.")


class CharacterContinuityIssue(WireModel):
    scene_number: int
    character: str
    issue: str = Field(description="A detailed description of the character continuity issue.")


class CostumeContinuityIssue(WireModel):
    character: str
    scene_numbers: List[int]
    issue: str = Field(description="A detailed description of the costume continuity issue.")


class EditingContinuityIssue(WireModel):
    scene_numbers: List[int]
    issue: str = Field(description="A detailed description of the potential editing problem (e.g., crossing the line, jump cuts).")
    suggestion: str = Field(description="A suggestion to mitigate the editing issue.")


class ContinuityAnalysis(WireModel):
    character_continuity: List[CharacterContinuityIssue] = Field(description="Issues with character presence or absence across scenes.")
    costume_continuity: List[CostumeContinuityIssue] = Field(description="Issues with costume consistency across scenes for characters.")
    editing_continuity: List[EditingContinuityIssue] = Field(description="Potential editing issues between consecutive or related scenes.")

    @property
    def has_issues(self) -> bool:
        return bool(self.character_continuity or self.costume_continuity or self.editing_continuity)


class Attachment(WireModel):
    """An uploaded script file, passed through to the backend untouched."""

    data: str = Field(description="Base64-encoded file contents")
    mime_type: str = Field(description="MIME type of the file, e.g. application/pdf")


class ConversationTurn(WireModel):
    role: Literal["user", "assistant", "pending"]
    content: str = ""
    id: str = Field(default_factory=lambda: uuid4().hex)

    @property
    def is_pending(self) -> bool:
        return self.role == "pending"
