import asyncio
import base64
import click
import json
import logging
import mimetypes
from pathlib import Path
from dotenv import load_dotenv

from cinegenius.config import Config, SUPPORTED_LANGUAGES
from cinegenius.core.ai_client import GenAIClient
from cinegenius.core.errors import GenerationError
from cinegenius.core.exporter import ArtifactExporter
from cinegenius.core.models import Attachment, ScriptAnalysis
from cinegenius.core.orchestrator import ScriptOrchestrator
from cinegenius.core.session import ProductionSession

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".fountain", ".md", ".text"}

language_option = click.option(
    '--language', default=None, type=click.Choice(SUPPORTED_LANGUAGES),
    help='Language of the generated artifacts (defaults to DEFAULT_LANGUAGE).'
)


def load_script(path: Path):
    """Returns (text, attachment): plain-text scripts as text, anything else as a base64 attachment."""
    if path.suffix.lower() in TEXT_SUFFIXES:
        return path.read_text(encoding='utf-8'), None
    mime_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
    data = base64.b64encode(path.read_bytes()).decode('ascii')
    return None, Attachment(data=data, mime_type=mime_type)


def build_orchestrator() -> ScriptOrchestrator:
    load_dotenv()
    Config.validate()
    return ScriptOrchestrator(GenAIClient())


@click.group()
def main():
    """
    Turns film scripts into production artifacts using Gemini.
    """


@main.command()
@click.argument('script_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@language_option
@click.option('--output-dir', default=str(Config.BASE_OUTPUT_DIR), help='Directory to save results.')
@click.option('--schedule', is_flag=True, help='Also generate a shooting schedule.')
@click.option('--continuity', is_flag=True, help='Also generate a continuity report.')
@click.option('--storyboard', 'storyboard_scenes', multiple=True, type=int, help='Scene number to storyboard (repeatable).')
@click.option('--guide', 'guide_scenes', multiple=True, type=int, help='Scene number to build a production guide for (repeatable).')
def analyze(script_file, language, output_dir, schedule, continuity, storyboard_scenes, guide_scenes):
    """
    Analyzes SCRIPT_FILE and writes the requested artifacts to the output directory.
    """
    try:
        orchestrator = build_orchestrator()
    except ValueError as e:
        logger.error(str(e))
        raise SystemExit(1)

    text, attachment = load_script(script_file)
    logger.info(f"Loaded script file: {script_file}")

    session = ProductionSession(orchestrator, language or Config.DEFAULT_LANGUAGE)
    exporter = ArtifactExporter(Path(output_dir))

    failures = asyncio.run(_run_analysis(
        session, exporter, text, attachment, schedule, continuity, storyboard_scenes, guide_scenes
    ))
    if failures:
        raise SystemExit(1)
    logger.info(f"Job Complete! Check {output_dir}.")


async def _run_analysis(session, exporter, text, attachment, schedule, continuity, storyboard_scenes, guide_scenes) -> int:
    try:
        analysis = await session.analyze_script(text=text, attachment=attachment)
    except GenerationError as e:
        logger.error(str(e))
        return 1
    exporter.save_analysis(analysis)

    failures = 0

    # Each task fails on its own; the others still run
    if schedule:
        try:
            exporter.save_schedule(await session.get_schedule())
        except GenerationError as e:
            logger.error(str(e))
            failures += 1

    if continuity:
        try:
            report = await session.get_continuity_report()
            if not report.has_issues:
                logger.info("No continuity issues found.")
            exporter.save_continuity(report)
        except GenerationError as e:
            logger.error(str(e))
            failures += 1

    for scene_number in guide_scenes:
        try:
            exporter.save_guide(scene_number, await session.get_production_guide(scene_number))
        except GenerationError as e:
            logger.error(str(e))
            failures += 1

    for scene_number in storyboard_scenes:
        try:
            shots = await session.get_shot_list(scene_number)
            await session.wait_for_images()
            exporter.save_storyboard(scene_number, shots)
        except GenerationError as e:
            logger.error(str(e))
            failures += 1

    exporter.save_manifest(analysis.title)
    return failures


@main.command()
@click.argument('analysis_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('question')
@language_option
def ask(analysis_file, question, language):
    """
    Answers QUESTION about a script analysis previously saved as ANALYSIS_FILE.
    """
    try:
        orchestrator = build_orchestrator()
    except ValueError as e:
        logger.error(str(e))
        raise SystemExit(1)

    with open(analysis_file, 'r', encoding='utf-8') as f:
        analysis = ScriptAnalysis.model_validate(json.load(f))

    try:
        answer = asyncio.run(orchestrator.ask_script_question(analysis, question, language or Config.DEFAULT_LANGUAGE))
    except GenerationError as e:
        logger.error(str(e))
        raise SystemExit(1)
    click.echo(answer)


@main.command()
@click.option('--host', default=Config.API_HOST, help='Interface to bind.')
@click.option('--port', default=Config.API_PORT, type=int, help='Port to listen on.')
def serve(host, port):
    """
    Runs the HTTP API.
    """
    from cinegenius.api import start_server
    start_server(host=host, port=port)


if __name__ == '__main__':
    main()
