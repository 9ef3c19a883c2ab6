"""
Fixed output shapes for every generation task.

Each entry is handed to the backend as ``response_schema`` and reused by the
validator as the parse target, so the request hint and the response check
can never drift apart.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from cinegenius.core.models import (
    ContinuityAnalysis,
    PlannedShot,
    ProductionBible,
    ScheduleDay,
    ScriptAnalysis,
)


class TaskKind(str, Enum):
    # Values double as the wire ``action`` names
    PARSE_SCRIPT = "parseScript"
    GENERATE_SCHEDULE = "generateSchedule"
    GENERATE_SHOT_LIST = "generateShotList"
    GENERATE_IMAGE = "generateImageForShot"
    GENERATE_PRODUCTION_GUIDE = "generateSceneProductionGuide"
    GENERATE_CONTINUITY_REPORT = "generateContinuityReport"
    ASK_QUESTION = "askScriptQuestion"


@dataclass(frozen=True)
class TaskSpec:
    kind: TaskKind
    label: str
    schema: Optional[Any] = None
    expects_image: bool = False

    @property
    def is_structured(self) -> bool:
        return self.schema is not None


TASK_SPECS: Dict[TaskKind, TaskSpec] = {
    TaskKind.PARSE_SCRIPT: TaskSpec(TaskKind.PARSE_SCRIPT, "script analysis", ScriptAnalysis),
    TaskKind.GENERATE_SCHEDULE: TaskSpec(TaskKind.GENERATE_SCHEDULE, "scheduling", List[ScheduleDay]),
    TaskKind.GENERATE_SHOT_LIST: TaskSpec(TaskKind.GENERATE_SHOT_LIST, "the shot list", List[PlannedShot]),
    TaskKind.GENERATE_IMAGE: TaskSpec(TaskKind.GENERATE_IMAGE, "the shot image", expects_image=True),
    TaskKind.GENERATE_PRODUCTION_GUIDE: TaskSpec(
        TaskKind.GENERATE_PRODUCTION_GUIDE, "the scene production guide", ProductionBible
    ),
    TaskKind.GENERATE_CONTINUITY_REPORT: TaskSpec(
        TaskKind.GENERATE_CONTINUITY_REPORT, "the continuity analysis", ContinuityAnalysis
    ),
    TaskKind.ASK_QUESTION: TaskSpec(TaskKind.ASK_QUESTION, "the script assistant"),
}


def get_spec(kind: TaskKind) -> TaskSpec:
    return TASK_SPECS[TaskKind(kind)]
