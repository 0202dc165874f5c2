"""
Command-line entry points.

Usage:
    careerrag ingest --corpus-dir data/knowledge_base
    careerrag status
    careerrag analyze resume.pdf job.txt
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn, Optional

import typer
from dotenv import load_dotenv

from .config import get_settings
from .embeddings import make_embedder
from .errors import CareerRAGError
from .loaders import extract_resume_text
from .logging_config import configure_logging
from .services import build_analyzer, build_ingestion_pipeline
from .vectorstore import PineconeIndex, make_vector_index

app = typer.Typer(help="Career knowledge-base ingestion and resume analysis.")


def _fail(e: CareerRAGError) -> NoReturn:
    typer.echo(f"ERROR [{e.kind}]: {e}", err=True)
    raise typer.Exit(1)


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL")):
    load_dotenv()
    configure_logging(log_level or get_settings().log_level)


@app.command()
def ingest(
    corpus_dir: Optional[Path] = typer.Option(None, "--corpus-dir", help="Knowledge base directory"),
    smoke_test: bool = typer.Option(True, "--smoke-test/--no-smoke-test", help="Run a test query afterwards"),
):
    """Chunk, embed and upsert the knowledge base into the vector index."""
    settings = get_settings()
    typer.echo("=== Knowledge Base Ingestion ===")
    try:
        pipeline = build_ingestion_pipeline(settings)
        report = pipeline.run(corpus_dir, smoke_test=smoke_test)
    except CareerRAGError as e:
        _fail(e)

    typer.echo(f"\nDocuments: {report.documents}")
    typer.echo(f"Chunks: {report.chunks}")
    typer.echo(f"Vectors upserted: {report.vectors_upserted} in {report.batches} batch(es)")
    if report.stats:
        typer.echo(f"Index total vectors: {report.stats.total_vectors}")
        typer.echo(f"Dimension: {report.stats.dimension or 'N/A'}")
        typer.echo(f"Index fullness: {report.stats.fullness_ratio * 100:.2f}%")
    typer.echo("\nKnowledge base ingestion completed successfully.")


@app.command()
def status(
    query: str = typer.Option("resume best practices", "--query", help="Test query when populated"),
):
    """Check that the configured index exists, show its stats and run a test query."""
    settings = get_settings()
    cfg = settings.vector_index
    typer.echo("=== Vector Index Status Check ===\n")

    try:
        index = make_vector_index(cfg)
        if isinstance(index, PineconeIndex):
            indexes = index.list_indexes()
            typer.echo("Available indexes:")
            for i, idx in enumerate(indexes, start=1):
                typer.echo(f"  {i}. {idx.get('name')} ({idx.get('dimension')} dimensions, {idx.get('metric')} metric)")
            if not any(idx.get("name") == cfg.index_name for idx in indexes):
                typer.echo(f"\nIndex '{cfg.index_name}' not found!", err=True)
                typer.echo(
                    f"Create it with name={cfg.index_name}, "
                    f"dimension={settings.embedding.dimension}, metric=cosine.",
                    err=True,
                )
                raise typer.Exit(1)
            typer.echo(f"\nIndex '{cfg.index_name}' exists")

        stats = index.stats()
        typer.echo("\n=== Index Statistics ===")
        typer.echo(f"Total vectors: {stats.total_vectors}")
        typer.echo(f"Dimension: {stats.dimension or 'N/A'}")
        typer.echo(f"Index fullness: {stats.fullness_ratio * 100:.2f}%")
        for name, count in stats.namespaces.items():
            typer.echo(f"  - {name or 'default'}: {count} vectors")

        if stats.total_vectors == 0:
            typer.echo("\nIndex is empty! Run `careerrag ingest` to populate it.")
            return

        typer.echo(f"\nIndex is populated with {stats.total_vectors} vectors")
        embedder = make_embedder(settings.embedding)
        matches = index.query(embedder.embed(query), top_k=3, include_metadata=True)
    except CareerRAGError as e:
        _fail(e)

    typer.echo(f"\n=== Test Query: {query!r} ===")
    for i, m in enumerate(matches, start=1):
        typer.echo(f"{i}. Score: {m.score:.4f}  ID: {m.id}")
        typer.echo(f"   Category: {m.category}  Filename: {(m.metadata or {}).get('filename', 'N/A')}")
        typer.echo(f"   Preview: {m.text[:100]}...")


@app.command()
def analyze(
    resume_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Resume (PDF/DOCX/TXT)"),
    job_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Job description text file"),
):
    """Score a resume against a job description and print the JSON result."""
    settings = get_settings()
    try:
        resume_text = extract_resume_text(resume_file.name, resume_file.read_bytes())
        analyzer = build_analyzer(settings)
        result = analyzer.analyze(resume_text, job_file.read_text(encoding="utf-8"))
    except CareerRAGError as e:
        _fail(e)

    typer.echo(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))


if __name__ == "__main__":
    app()
