import base64
import io
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from PIL import Image

from cinegenius.config import setup_directories
from cinegenius.core.models import ContinuityAnalysis, ProductionBible, ScheduleDay, ScriptAnalysis, Shot

logger = logging.getLogger(__name__)


class ArtifactExporter:
    """Writes generated artifacts under an output directory and keeps a manifest of them."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        setup_directories(self.output_dir)
        self.storyboard_dir = self.output_dir / "storyboards"
        self.guide_dir = self.output_dir / "guides"
        # Registry of everything written during this run
        self.written: Dict[str, Any] = {"storyboards": [], "guides": []}

    def save_analysis(self, analysis: ScriptAnalysis) -> Path:
        path = self._write_json("analysis.json", analysis.to_wire())
        self.written["analysis"] = path.name
        return path

    def save_schedule(self, schedule: List[ScheduleDay]) -> Path:
        path = self._write_json("schedule.json", [day.to_wire() for day in schedule])
        self.written["schedule"] = path.name
        return path

    def save_continuity(self, report: ContinuityAnalysis) -> Path:
        path = self._write_json("continuity.json", report.to_wire())
        self.written["continuity"] = path.name
        return path

    def save_guide(self, scene_number: int, guide: ProductionBible) -> Path:
        path = self._write_json(Path("guides") / f"scene_{scene_number}.json", guide.to_wire())
        self.written["guides"].append({"scene_number": scene_number, "path": self._relative(path)})
        return path

    def save_storyboard(self, scene_number: int, shots: List[Shot]) -> List[Path]:
        """Saves the shot list as JSON and each rendered frame as a JPEG."""
        frames = []
        entries = []
        for shot in shots:
            frame_path = None
            if shot.image_url and not shot.image_failed:
                frame_path = self._save_frame(shot.image_url, self.storyboard_dir / f"scene_{scene_number}_shot_{shot.shot_number}.jpg")
            elif shot.image_failed:
                logger.warning(f"Shot {shot.shot_number} of scene {scene_number} has no image. Skipping frame.")
            if frame_path:
                frames.append(frame_path)

            entry = shot.model_dump(by_alias=True, exclude={"image_url", "is_loading_image"})
            entry["frame"] = self._relative(frame_path) if frame_path else None
            entries.append(entry)

        shots_path = self._write_json(Path("storyboards") / f"scene_{scene_number}.json", entries)
        self.written["storyboards"].append({"scene_number": scene_number, "path": self._relative(shots_path)})
        return frames

    def save_manifest(self, title: Optional[str] = None) -> Path:
        """Creates a global JSON manifest listing every artifact written so far."""
        data = {"title": title, **self.written}
        path = self._write_json("data.json", data)
        logger.info(f"Manifest saved to {path}")
        return path

    def _save_frame(self, data_url: str, output_path: Path) -> Optional[Path]:
        try:
            _, encoded = data_url.split(",", 1)
            image = Image.open(io.BytesIO(base64.b64decode(encoded)))
            # Gemini image models answer with PNG; frames are always stored as JPEG
            image.convert("RGB").save(output_path, "JPEG")
            return output_path
        except Exception as e:
            logger.error(f"Could not save frame {output_path.name}: {e}")
            return None

    def _write_json(self, relative_path, data) -> Path:
        path = self.output_dir / relative_path
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=4)
        return path

    def _relative(self, path: Path) -> str:
        return str(path.relative_to(self.output_dir))
