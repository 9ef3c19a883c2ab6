from .ai_client import GenAIClient
from .orchestrator import ScriptOrchestrator
from .session import ProductionSession, TaskState
from .models import Scene, Character, ScriptAnalysis, Shot
