"""CLI runner for the reelsmith pipeline.

Usage:
    reelsmith new "<title>" --idea "<idea>"
    reelsmith ideas <lang>
    reelsmith script <project_id>
    reelsmith audio <project_id> <narration.mp3>
    reelsmith transcribe <project_id>
    reelsmith sections <project_id>
    reelsmith select <project_id> <section_index> <video_id>
    reelsmith research <project_id> <section_index> "<query>"
    reelsmith captions <project_id> [-o subtitles.srt]
    reelsmith render <project_id>
    reelsmith status [project_ids...]
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

console = Console()

_DEFAULT_CONFIG = "config.yaml"
_POLL_INTERVAL = 0.2


def _setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quiet down httpx unless debugging
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def _load(ctx: click.Context):
    """Return (config, store) for the current invocation."""
    from reelsmith.config import get_data_dir, load_config
    from reelsmith.projects import ProjectStore

    config_path = ctx.obj["config"]
    config = load_config(config_path)
    return config, ProjectStore(get_data_dir(config, config_path))


def _fail(exc: BaseException) -> None:
    from reelsmith.config import ConfigError

    if isinstance(exc, KeyboardInterrupt):
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)
    if isinstance(exc, ConfigError):
        console.print(f"[red]Configuration error: {exc}[/red]")
    else:
        console.print(f"[red]Error: {exc}[/red]")
    sys.exit(1)


@click.group()
@click.option("--config", "-c", default=_DEFAULT_CONFIG, help="Path to config.yaml")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool) -> None:
    """reelsmith: narrated, captioned stock-footage videos."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    _setup_logging(verbose)


# ------------------------------------------------------------------
# new / ideas / script
# ------------------------------------------------------------------

@cli.command("new")
@click.argument("title")
@click.option("--language", "-l", default="en", help="Language code")
@click.option("--idea", default=None, help="Idea text for the script step")
@click.pass_context
def cmd_new(ctx: click.Context, title: str, language: str, idea: str | None) -> None:
    """Create a project."""
    try:
        _, store = _load(ctx)
        project = store.create(title, language_code=language, idea_text=idea)
        if idea:
            project.current_step = 2
            store.save(project)
    except (FileNotFoundError, ValueError, KeyboardInterrupt) as exc:
        _fail(exc)
    console.print(f"[green]Created project {project.id}[/green]")


@cli.command("ideas")
@click.argument("language")
@click.option("--count", "-n", default=5, show_default=True, help="Number of ideas")
@click.pass_context
def cmd_ideas(ctx: click.Context, language: str, count: int) -> None:
    """Generate video ideas for a language."""
    from reelsmith.clients.openrouter import LLMError, build_client
    from reelsmith.config import get_language

    try:
        config, store = _load(ctx)
        lang = get_language(config, language)
        previous = [p.idea_text for p in store.list_projects() if p.idea_text]
        ideas = build_client(config).generate_ideas(
            lang.idea_system_prompt, lang.idea_model, count, previous,
        )
    except LLMError as exc:
        console.print(f"[red]Idea generation failed: {exc}[/red]")
        sys.exit(1)
    except (FileNotFoundError, ValueError, KeyboardInterrupt) as exc:
        _fail(exc)

    for i, idea in enumerate(ideas, 1):
        console.print(f"  {i}. {idea}")


@cli.command("script")
@click.argument("project_id")
@click.pass_context
def cmd_script(ctx: click.Context, project_id: str) -> None:
    """Write the narration script for a project's idea."""
    from reelsmith.clients.openrouter import LLMError, build_client
    from reelsmith.config import get_language

    try:
        config, store = _load(ctx)
        project = store.load(project_id)
        if not project.idea_text:
            raise ValueError(f"Project {project_id} has no idea text")
        lang = get_language(config, project.language_code)
        console.print(f"[bold]Writing script for {project_id}...[/bold]")
        project.script_text = build_client(config).generate_script(
            lang.script_system_prompt, lang.script_model, project.idea_text,
        )
        project.current_step = 2
        store.save(project)
    except LLMError as exc:
        console.print(f"[red]Script generation failed: {exc}[/red]")
        sys.exit(1)
    except (FileNotFoundError, ValueError, KeyboardInterrupt) as exc:
        _fail(exc)

    console.print(f"[green]Script saved ({len(project.script_text.split())} words)[/green]")


# ------------------------------------------------------------------
# audio / transcribe
# ------------------------------------------------------------------

@cli.command("audio")
@click.argument("project_id")
@click.argument("audio_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def cmd_audio(ctx: click.Context, project_id: str, audio_path: str) -> None:
    """Attach a narration audio file to a project."""
    try:
        _, store = _load(ctx)
        project = store.load(project_id)
        project.audio_file_path = str(Path(audio_path).resolve())
        project.current_step = 3
        store.save(project)
    except (FileNotFoundError, ValueError, KeyboardInterrupt) as exc:
        _fail(exc)
    console.print(f"[green]{project_id}: audio set to {project.audio_file_path}[/green]")


@cli.command("transcribe")
@click.argument("project_id")
@click.pass_context
def cmd_transcribe(ctx: click.Context, project_id: str) -> None:
    """Generate word-level captions from the narration."""
    from reelsmith.clients.assemblyai import build_client
    from reelsmith.clients.base import ApiError

    async def _transcribe(config: dict, audio_path: str):
        async with build_client(config) as client:
            return await client.transcribe(audio_path)

    try:
        config, store = _load(ctx)
        project = store.load(project_id)
        if not project.audio_file_path:
            raise ValueError(f"Project {project_id} has no narration audio")
        console.print(f"[bold]Transcribing {project.audio_file_path}...[/bold]")
        project.captions = asyncio.run(_transcribe(config, project.audio_file_path))
        project.current_step = 4
        store.save(project)
    except ApiError as exc:
        console.print(f"[red]Transcription failed: {exc}[/red]")
        sys.exit(1)
    except (FileNotFoundError, ValueError, KeyboardInterrupt) as exc:
        _fail(exc)

    console.print(f"[green]{project_id}: {len(project.captions)} caption word(s)[/green]")


# ------------------------------------------------------------------
# sections / select / research
# ------------------------------------------------------------------

@cli.command("sections")
@click.argument("project_id")
@click.pass_context
def cmd_sections(ctx: click.Context, project_id: str) -> None:
    """Split the narration into visual sections and search stock footage."""
    from reelsmith.clients import ApiError, LLMError
    from reelsmith.clients import openrouter, pexels
    from reelsmith.config import get_language
    from reelsmith.visuals import plan_visual_sections

    async def _plan(config: dict, project, lang):
        async with pexels.build_client(config) as stock:
            return await plan_visual_sections(
                openrouter.build_client(config), stock, project.captions, lang,
            )

    try:
        config, store = _load(ctx)
        project = store.load(project_id)
        if not project.script_text or not project.captions:
            raise ValueError("Script and captions must be generated first")
        lang = get_language(config, project.language_code)
        project.visuals = asyncio.run(_plan(config, project, lang))
        project.current_step = 5
        store.save(project)
    except (ApiError, LLMError) as exc:
        console.print(f"[red]Section planning failed: {exc}[/red]")
        sys.exit(1)
    except (FileNotFoundError, ValueError, KeyboardInterrupt) as exc:
        _fail(exc)

    _print_sections(project)


@cli.command("select")
@click.argument("project_id")
@click.argument("section_index", type=int)
@click.argument("video_id", type=int)
@click.pass_context
def cmd_select(ctx: click.Context, project_id: str, section_index: int, video_id: int) -> None:
    """Download a search result and use it for a section."""
    from reelsmith.clients.base import ApiError
    from reelsmith.clients.pexels import build_client
    from reelsmith.config import get_upload_dir
    from reelsmith.visuals import select_video

    async def _select(config: dict, project, upload_dir: Path):
        async with build_client(config) as stock:
            return await select_video(stock, project, section_index, video_id, upload_dir)

    try:
        config, store = _load(ctx)
        project = store.load(project_id)
        upload_dir = get_upload_dir(config, ctx.obj["config"])
        asyncio.run(_select(config, project, upload_dir))
        if all(s.is_selected for s in project.visuals):
            project.current_step = 6
        store.save(project)
    except ApiError as exc:
        console.print(f"[red]Download failed: {exc}[/red]")
        sys.exit(1)
    except (FileNotFoundError, ValueError, KeyboardInterrupt) as exc:
        _fail(exc)

    _print_sections(project)


@cli.command("research")
@click.argument("project_id")
@click.argument("section_index", type=int)
@click.argument("query")
@click.pass_context
def cmd_research(ctx: click.Context, project_id: str, section_index: int, query: str) -> None:
    """Search stock footage again for one section with a new query."""
    from reelsmith.clients.base import ApiError
    from reelsmith.clients.pexels import build_client
    from reelsmith.visuals import research_section

    async def _research(config: dict, project):
        async with build_client(config) as stock:
            return await research_section(stock, project, section_index, query)

    try:
        config, store = _load(ctx)
        project = store.load(project_id)
        section = asyncio.run(_research(config, project))
        store.save(project)
    except ApiError as exc:
        console.print(f"[red]Search failed: {exc}[/red]")
        sys.exit(1)
    except (FileNotFoundError, ValueError, KeyboardInterrupt) as exc:
        _fail(exc)

    for video in section.results:
        console.print(f"  {video.id}: {video.width}x{video.height}, {video.duration:.0f}s  {video.url}")


def _print_sections(project) -> None:
    table = Table(title=f"Sections [{project.id}]", show_lines=True)
    table.add_column("#", justify="right")
    table.add_column("Time", justify="center")
    table.add_column("Query", style="cyan")
    table.add_column("Results")
    table.add_column("Selected", justify="center")

    for i, s in enumerate(project.visuals or []):
        results = ", ".join(str(v.id) for v in s.results)
        selected = f"[green]{s.selected_video.id}[/green]" if s.selected_video else "[dim]-[/dim]"
        table.add_row(
            str(i),
            f"{s.start_time:.1f}-{s.end_time:.1f}s",
            s.search_query,
            results,
            selected,
        )
    console.print(table)


# ------------------------------------------------------------------
# captions / render
# ------------------------------------------------------------------

@cli.command("captions")
@click.argument("project_id")
@click.option("--output", "-o", default=None, help="Where to write the .srt file")
@click.pass_context
def cmd_captions(ctx: click.Context, project_id: str, output: str | None) -> None:
    """Write the project's subtitle chunks as an .srt file."""
    from reelsmith.captions import chunk_captions, write_subtitle_file

    try:
        _, store = _load(ctx)
        project = store.load(project_id)
        if project.captions is None:
            raise ValueError(f"Project {project_id} has no captions")
        chunks = chunk_captions(project.captions)
        path = write_subtitle_file(chunks, Path(output or f"{project_id}.srt"))
    except (FileNotFoundError, ValueError, KeyboardInterrupt) as exc:
        _fail(exc)

    console.print(f"[green]{len(chunks)} cue(s) -> {path}[/green]")


@cli.command("render")
@click.argument("project_id")
@click.option(
    "--missing-clips",
    type=click.Choice(["strict", "best-effort"]),
    default=None,
    help="Override render.missing_clips from config",
)
@click.pass_context
def cmd_render(ctx: click.Context, project_id: str, missing_clips: str | None) -> None:
    """Render the final video and wait for it to finish."""
    from reelsmith.config import get_clip_policy, get_ffmpeg_bins, get_upload_dir
    from reelsmith.ffmpeg import FFmpeg
    from reelsmith.jobs import RenderAlreadyRunningError, RenderJobManager
    from reelsmith.models import ClipPolicy, RenderState
    from reelsmith.projects import ProjectNotReadyError
    from reelsmith.renderer import RenderError, RenderOrchestrator

    stages = [s for s in RenderState if s is not RenderState.FAILED]

    async def _render(manager: RenderJobManager) -> Path:
        job = manager.submit_project(project_id)
        console.print(f"\n[bold]Rendering {project_id}...[/bold]\n")
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            bar = progress.add_task(RenderState.PENDING.value, total=len(stages) - 1)
            while not job.done:
                if job.state in stages:
                    progress.update(bar, description=job.state.value, completed=stages.index(job.state))
                await asyncio.sleep(_POLL_INTERVAL)
            if job.succeeded:
                progress.update(bar, description=RenderState.DONE.value, completed=len(stages) - 1)
        return await job.wait()

    try:
        config, store = _load(ctx)
        ffmpeg_bin, ffprobe_bin = get_ffmpeg_bins(config)
        ffmpeg = FFmpeg(ffmpeg_bin, ffprobe_bin)
        ffmpeg.check_available()
        orchestrator = RenderOrchestrator(
            ffmpeg,
            upload_dir=get_upload_dir(config, ctx.obj["config"]),
            clip_policy=ClipPolicy(missing_clips) if missing_clips else get_clip_policy(config),
        )
        path = asyncio.run(_render(RenderJobManager(orchestrator, store)))
    except (RenderError, RenderAlreadyRunningError, ProjectNotReadyError) as exc:
        console.print(f"[red]{project_id}: {exc}[/red]")
        sys.exit(1)
    except (FileNotFoundError, ValueError, RuntimeError, KeyboardInterrupt) as exc:
        _fail(exc)

    console.print(f"[green]{project_id}: done -> {path}[/green]")


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------

@cli.command("status")
@click.argument("project_ids", nargs=-1)
@click.pass_context
def cmd_status(ctx: click.Context, project_ids: tuple[str, ...]) -> None:
    """Show project status. Pass project ids or omit for all."""
    try:
        _, store = _load(ctx)
        if project_ids:
            projects = [store.load(pid) for pid in project_ids]
        else:
            projects = store.list_projects()
    except (FileNotFoundError, ValueError, KeyboardInterrupt) as exc:
        _fail(exc)

    if not projects:
        console.print("[yellow]No projects found.[/yellow]")
        return

    table = Table(title="Projects", show_lines=True)
    table.add_column("Project", style="cyan")
    table.add_column("Title")
    table.add_column("Step", justify="center")
    table.add_column("Sections", justify="center")
    table.add_column("Status", justify="center")
    table.add_column("Video", max_width=50)

    for p in projects:
        visuals = p.visuals or []
        selected = sum(1 for s in visuals if s.is_selected)
        st = p.status.value
        if st == "completed":
            status_str = "[green]completed[/green]"
        elif st == "failed":
            status_str = f"[red]failed[/red]{f' ({p.error})' if p.error else ''}"
        elif st == "rendering":
            status_str = "[yellow]rendering[/yellow]"
        else:
            status_str = "[dim]in progress[/dim]"
        table.add_row(
            p.id,
            p.title,
            f"{p.current_step}/7",
            f"{selected}/{len(visuals)}",
            status_str,
            p.final_video_path or "",
        )

    console.print(table)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
