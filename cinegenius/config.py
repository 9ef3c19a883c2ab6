import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

SUPPORTED_LANGUAGES = ("English", "Spanish", "French", "German", "Japanese", "Chinese")


class Config:
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")

    TEXT_MODEL_NAME = os.getenv("TEXT_MODEL_NAME", "gemini-2.5-flash")
    IMAGE_MODEL_NAME = os.getenv("IMAGE_MODEL_NAME", "imagen-3.0-generate-002")

    DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "English")

    BASE_OUTPUT_DIR = Path("output")

    # Storyboard frame settings
    IMAGE_ASPECT_RATIO = "16:9"
    IMAGE_MIME_TYPE = "image/jpeg"

    API_HOST = os.getenv("API_HOST", "127.0.0.1")
    API_PORT = int(os.getenv("API_PORT", "8000"))

    @staticmethod
    def validate():
        if not Config.GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY environment variable is not set.")
        if Config.DEFAULT_LANGUAGE not in SUPPORTED_LANGUAGES:
            raise ValueError(
                f"DEFAULT_LANGUAGE must be one of {', '.join(SUPPORTED_LANGUAGES)}, got '{Config.DEFAULT_LANGUAGE}'."
            )

# Ensure output directories exist structure
def setup_directories(base_path: Path):
    dirs = [
        base_path / "storyboards",
        base_path / "guides",
    ]
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)
