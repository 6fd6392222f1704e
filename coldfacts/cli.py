"""CLI interface for ColdFacts."""

import asyncio
import logging
from typing import List, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from .core.engine import KnowledgeEngine
from .core.errors import ColdFactsError
from .core.topics import TopicSampler
from .models.config import Settings
from .models.knowledge import KnowledgeRecord, TrendingTopics

# Setup logger
logger = logging.getLogger(__name__)


# Initialize Typer app and Rich console
app = typer.Typer(
    name="coldfacts",
    help="ColdFacts - surprising trivia, fetched resiliently from an LLM backend"
)
console = Console()


def setup_logging(log_level: str = "INFO"):
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler("coldfacts.log"),
            logging.StreamHandler()
        ]
    )


def load_settings(verbose: bool = False) -> Settings:
    """Load settings and configure logging; quiet unless verbose."""
    try:
        settings = Settings()
    except Exception as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        raise typer.Exit(1)
    setup_logging(settings.log_level if verbose else "ERROR")
    return settings


def display_knowledge(records: List[KnowledgeRecord]):
    """Display generated knowledge records."""
    for index, record in enumerate(records, start=1):
        console.print(Panel(
            Markdown(f"""
# {record.title}

{record.content}

**Why it's interesting:** {record.why_interesting}

**Icebreaker:** {record.icebreaker}

**Quiz:** {record.quiz}

*Source:* [{record.source_name}]({record.source_url})
            """),
            title=f"🧊 {record.category} ({index}/{len(records)})",
            border_style="cyan"
        ))


def display_trending(result: TrendingTopics):
    """Display trending topics."""
    table = Table(title="📈 Trending Topics")
    table.add_column("#", style="cyan")
    table.add_column("Topic", style="green")
    for index, topic in enumerate(result.topics, start=1):
        table.add_row(str(index), topic)
    console.print(table)
    if result.from_fallback:
        console.print(
            "[yellow]⚠[/yellow] Recovered from plain text; the backend did not return JSON")


def display_topic_samples(samples: List[List[str]]):
    """Display a preview of topic sampler draws."""
    table = Table(title="🎲 Topic Samples")
    table.add_column("Draw", style="cyan")
    table.add_column("Topics", style="green")
    for index, topics in enumerate(samples, start=1):
        table.add_row(str(index), ", ".join(topics))
    console.print(table)


@app.command()
def generate(
    keywords: Optional[str] = typer.Argument(
        None, help="Keyword to focus on (random topics if omitted)"),
    count: Optional[int] = typer.Option(
        None, "--count", "-n", min=1, help="Number of facts to generate"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging")
):
    """Generate cold knowledge facts."""
    settings = load_settings(verbose)

    async def _generate():
        engine = KnowledgeEngine(settings)
        try:
            with console.status("[dim]Asking the backend...[/dim]"):
                return await engine.generate_knowledge(keywords, count)
        finally:
            await engine.close()

    try:
        records = asyncio.run(_generate())
    except (ColdFactsError, ValueError) as e:
        console.print(f"[red]✗[/red] Failed to generate knowledge: {e}")
        raise typer.Exit(1)

    display_knowledge(records)


@app.command()
def trending(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging")
):
    """Show today's trending topics."""
    settings = load_settings(verbose)

    async def _trending():
        engine = KnowledgeEngine(settings)
        try:
            with console.status("[dim]Searching trending topics...[/dim]"):
                return await engine.fetch_trending()
        finally:
            await engine.close()

    try:
        result = asyncio.run(_trending())
    except ColdFactsError as e:
        console.print(f"[red]✗[/red] Failed to fetch trending topics: {e}")
        raise typer.Exit(1)

    display_trending(result)


@app.command()
def topics(
    samples: int = typer.Option(
        5, "--samples", "-s", min=1, help="Number of draws to preview")
):
    """Preview random topic selection."""
    settings = load_settings()
    sampler = TopicSampler(settings.topic_pool)
    display_topic_samples([sampler.sample() for _ in range(samples)])


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(3001, "--port", "-p", help="Port to listen on"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging")
):
    """Run the HTTP API."""
    import uvicorn

    from .api.app import create_app

    settings = load_settings(verbose)
    console.print(Panel(
        Markdown(f"""
**Listening on** http://{host}:{port}

- `POST /api/generate` - generate cold knowledge
- `POST /api/trending` - trending topics
        """),
        title="🧊 ColdFacts API",
        border_style="green"
    ))
    uvicorn.run(create_app(settings), host=host, port=port)


@app.command()
def status():
    """Show configuration."""
    settings = load_settings()

    table = Table(title="🧊 ColdFacts Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("API key", "✓ Configured" if settings.has_credentials else "✗ Missing")
    table.add_row("Backend", "Azure OpenAI" if settings.azure_openai_endpoint else "OpenAI")
    table.add_row("Knowledge model", settings.knowledge_model)
    table.add_row("Trending model", settings.trending_model)
    table.add_row("Search grounding", "on" if settings.use_search_grounding else "off")
    table.add_row("Retry policy",
                  f"{settings.max_attempts} attempts, {settings.base_delay_ms}ms base delay")
    table.add_row("Decode retries", str(settings.decode_retries))
    table.add_row("Topic pool", f"{len(settings.topic_pool)} topics")

    console.print(table)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
