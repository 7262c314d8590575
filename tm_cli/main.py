from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer

from tm_core.db.schema import initialize_database
from tm_core.errors import ConfigurationError, LookupFailure
from tm_core.models import MatchCandidate, NormalizedQuery
from tm_core.project.config import MatchingConfig, read_matching_config
from tm_core.similarity.composite import CompositeScorer
from tm_core.tm.normalize import TextNormalizer
from tm_core.tm.tm_search import TMMatchingService
from tm_core.tm.tm_store import SqliteTMStore, upsert_tm_entry

app = typer.Typer(help="Translation-memory fuzzy matching CLI")


def _fail(message: str) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(code=1)


def _load_config(config_path: Path | None) -> MatchingConfig:
    if config_path is None:
        return MatchingConfig()
    return read_matching_config(config_path)


def _format_candidate(rank: int, candidate: MatchCandidate, auto_accept: bool) -> str:
    score = candidate.score
    flag = "auto-accept" if auto_accept else "review"
    kind = candidate.match_type.value
    return (
        f"{rank}. [{score.composite:.3f} {kind} {flag}] "
        f"{candidate.entry.source_text} => {candidate.entry.target_text} "
        f"(distance={score.distance_similarity:.3f} affix={score.affix_similarity:.3f} "
        f"token={score.token_similarity:.3f} context=+{score.context_boost:.2f} "
        f"category=+{score.category_boost:.2f}, id={candidate.entry.id})"
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("init-db")
def init_db_command(
    db: Path = typer.Option(..., "--db", help="TM database file.", dir_okay=False),
) -> None:
    """Create or migrate a translation-memory database."""

    engine = initialize_database(db)
    engine.dispose()
    typer.echo(f"Database ready: {db}")


@app.command("add-entry")
def add_entry_command(
    source: str = typer.Argument(..., help="Source text."),
    target: str = typer.Argument(..., help="Translated text."),
    db: Path = typer.Option(..., "--db", help="TM database file.", dir_okay=False),
    source_lang: str = typer.Option("en", "--source-lang", help="Source language code."),
    target_lang: str = typer.Option(..., "--target-lang", help="Target language code."),
    context: str | None = typer.Option(None, "--context", help="Game context."),
    category: str | None = typer.Option(None, "--category", help="Category label."),
) -> None:
    """Insert a TM entry, or update the one with the same normalized source."""

    tm_id = upsert_tm_entry(
        db_path=db,
        source_language=source_lang,
        target_language=target_lang,
        source_text=source,
        target_text=target,
        game_context=context,
        category=category,
    )
    typer.echo(f"Entry stored: {tm_id}")


@app.command("match")
def match_command(
    query: str = typer.Argument(..., help="Source text to look up."),
    db: Path = typer.Option(
        ..., "--db", help="TM database file.", exists=True, dir_okay=False
    ),
    lang: str = typer.Option(..., "--lang", help="Target language code."),
    context: str | None = typer.Option(None, "--context", help="Game context of the query."),
    category: str | None = typer.Option(None, "--category", help="Category of the query."),
    limit: int | None = typer.Option(None, "--limit", help="Maximum results."),
    config: Path | None = typer.Option(
        None, "--config", help="YAML matching config.", exists=True, dir_okay=False
    ),
) -> None:
    """Print ranked fuzzy matches for QUERY."""

    try:
        matching_config = _load_config(config)
    except ConfigurationError as exc:
        raise _fail(str(exc)) from exc

    async def _lookup() -> tuple[list[MatchCandidate], TMMatchingService]:
        with SqliteTMStore(db) as store:
            service = TMMatchingService(store, matching_config)
            matches = await service.find_fuzzy_matches(
                query, lang, limit, context=context, category=category
            )
            return matches, service

    try:
        matches, service = asyncio.run(_lookup())
    except (LookupFailure, ValueError) as exc:
        raise _fail(str(exc)) from exc

    if not matches:
        typer.echo("No matches found.")
        return
    for rank, candidate in enumerate(matches, start=1):
        typer.echo(_format_candidate(rank, candidate, service.should_auto_accept(candidate)))


@app.command("similarity")
def similarity_command(
    left: str = typer.Argument(..., help="Query text."),
    right: str = typer.Argument(..., help="Candidate text."),
    config: Path | None = typer.Option(
        None, "--config", help="YAML matching config.", exists=True, dir_okay=False
    ),
) -> None:
    """Show the score breakdown for two strings."""

    try:
        matching_config = _load_config(config)
    except ConfigurationError as exc:
        raise _fail(str(exc)) from exc

    normalizer = TextNormalizer()
    scorer = CompositeScorer(matching_config)
    query = NormalizedQuery(raw_text=left, text=normalizer.normalize(left), target_language="")
    score = scorer.score(query, normalizer.normalize(right))

    typer.echo(f"Distance similarity: {score.distance_similarity:.4f}")
    typer.echo(f"Affix similarity: {score.affix_similarity:.4f}")
    typer.echo(f"Token similarity: {score.token_similarity:.4f}")
    typer.echo(f"Composite: {score.composite:.4f}")
    verdict = "yes" if score.composite >= matching_config.auto_accept_threshold else "no"
    typer.echo(f"Auto-accept: {verdict}")


if __name__ == "__main__":
    app()
