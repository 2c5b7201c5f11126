# build_index.py
from pathlib import Path
from typing import Optional

import typer

from config.settings import settings
from util.enums import Color
from util.logger import init_logger

app = typer.Typer(add_completion=False, help="Build the notes embeddings artifact.")


@app.command()
def build(
    pdf: Path = typer.Argument(..., exists=True, dir_okay=False, help="Lecture notes PDF."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Artifact path (default: <PUBLIC_DIR>/embeddings.json)."
    ),
    batch_size: int = typer.Option(settings.EMBED_BATCH_SIZE, help="Embedding batch size."),
    chunk_tokens: int = typer.Option(settings.CHUNK_TOKENS, help="Target tokens per passage."),
    overlap_tokens: int = typer.Option(
        settings.CHUNK_OVERLAP_TOKENS, help="Tokens carried into the next passage."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Extract, chunk and embed PDF, then write the artifact JSON."""
    init_logger("DEBUG" if verbose else None)

    # Heavy imports stay out of `--help`
    from core.embedder import embed_texts
    from core.index_builder import build_artifact, write_artifact
    from core.pdf_text import extract_pages_texts

    target = output or Path(settings.PUBLIC_DIR) / settings.ARTIFACT_NAME
    typer.echo(f"{Color.CYAN}Extracting text from {pdf}...{Color.RESET}")
    pages = extract_pages_texts(pdf)
    if not pages:
        typer.echo(f"{Color.RED}No pages found in {pdf}{Color.RESET}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"{Color.CYAN}Chunking and embedding {len(pages)} pages...{Color.RESET}")
    artifact = build_artifact(
        pages,
        lambda texts: embed_texts(texts, batch_size=batch_size),
        chunk_chars=chunk_tokens * settings.CHARS_PER_TOKEN,
        overlap_chars=overlap_tokens * settings.CHARS_PER_TOKEN,
    )
    size = write_artifact(artifact, target)
    typer.echo(
        f"{Color.GREEN}Wrote {len(artifact['chunks'])} chunks to {target} "
        f"({size / 1024 / 1024:.2f} MB){Color.RESET}"
    )


if __name__ == "__main__":
    app()
