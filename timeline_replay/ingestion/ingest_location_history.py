"""CLI program for ingesting location history exports into parquet, or diagnosing ones that fail."""

import functools
import logging
from pathlib import Path

import pandas as pd
import typer
from tqdm import tqdm
from tqdm.contrib.concurrent import process_map

from timeline_replay.core.limits import DiagnosticLimits, ScanLimits
from timeline_replay.core.schema import SchemaColumns as C
from timeline_replay.core.schema import points_to_df
from timeline_replay.diagnostics.diagnostic_walker import diagnose
from timeline_replay.diagnostics.report_text import format_report_for_download
from timeline_replay.ingestion.extractor import NoPointsFound, ProgressCallback
from timeline_replay.ingestion.location_history_parser import (
    load_export_json,
    load_location_history_to_df,
)
from timeline_replay.postprocess.privacy import get_privacy_level_by_id
from timeline_replay.postprocess.stats import calculate_stats, format_stats_summary

logger = logging.getLogger(__name__)
typer.main.get_command_name = lambda name: name
app = typer.Typer(pretty_exceptions_show_locals=False)


def find_export_files(inputs: list[Path]) -> list[Path]:
    """Expand directories into the JSON files found recursively beneath them."""
    export_files: list[Path] = []
    for input_path in inputs:
        if not input_path.exists():
            raise FileNotFoundError(f"Input not found: {input_path}")
        if input_path.is_dir():
            found = sorted(input_path.rglob("*.json"))
            logger.info(f"Found {len(found)} JSON files in {input_path}")
            export_files.extend(found)
        else:
            export_files.append(input_path)
    return export_files


def process_single_export_file(
    export_file: Path,
    privacy_level: str,
    max_nodes: int,
    on_progress: ProgressCallback | None = None,
) -> pd.DataFrame:
    """Process a single export file and return a DataFrame, empty if nothing was extracted."""
    try:
        return load_location_history_to_df(
            export_file,
            privacy_level=privacy_level,
            limits=ScanLimits(max_nodes=max_nodes),
            on_progress=on_progress,
        )
    except NoPointsFound:
        logger.warning(
            f"No location points found in {export_file}; run the diagnose command on it"
        )
    except ValueError as e:
        logger.error(f"Failed to process {export_file}: {e}")
    return points_to_df([])


def _process_with_progress_bar(
    export_file: Path, privacy_level: str, max_nodes: int
) -> pd.DataFrame:
    with tqdm(total=100, desc=f"Extracting {export_file.name}", unit="%") as bar:

        def on_progress(percent: int) -> None:
            bar.update(percent - bar.n)

        return process_single_export_file(export_file, privacy_level, max_nodes, on_progress)


@app.command()
def extract(
    inputs: list[Path] = typer.Argument(
        ..., help="Export JSON files, or directories to search recursively for them"
    ),
    output_parquet: Path = typer.Option(..., "--output", "-o", help="Parquet file to write to"),
    privacy_level: str = typer.Option("none", help="none, low, medium, high or max"),
    max_nodes: int = typer.Option(ScanLimits().max_nodes, help="Node-visit ceiling per file"),
    max_workers: int = typer.Option(None, help="Maximum number of parallel workers"),
) -> None:
    """Extract time-ordered location points from exports into parquet format."""
    logging.basicConfig(level=logging.INFO)

    if get_privacy_level_by_id(privacy_level) is None:
        typer.echo(f"Error: unknown privacy level {privacy_level!r}.", err=True)
        raise typer.Exit(1)

    export_files = find_export_files(inputs)
    if not export_files:
        logger.info("No export files found")
        return

    if len(export_files) == 1:
        dataframes = [_process_with_progress_bar(export_files[0], privacy_level, max_nodes)]
    else:
        logger.info(f"Processing {len(export_files)} export files...")
        dataframes = process_map(
            functools.partial(
                process_single_export_file, privacy_level=privacy_level, max_nodes=max_nodes
            ),
            export_files,
            max_workers=max_workers,
            desc="Processing export files",
            chunksize=1,
        )

    non_empty_dataframes = [df for df in dataframes if not df.empty]
    if not non_empty_dataframes:
        typer.echo("Error: no location points found in any input.", err=True)
        raise typer.Exit(1)

    combined_df = pd.concat(non_empty_dataframes, ignore_index=True)
    combined_df = combined_df.sort_values(C.TIMESTAMP_MS, kind="stable", ignore_index=True)
    combined_df.index.name = C.DF_ID

    logger.info(f"Writing {len(combined_df)} points to parquet file: {output_parquet}")
    combined_df.to_parquet(output_parquet, engine="pyarrow", index=True)
    logger.info("Location history ingestion completed successfully")
    typer.echo(format_stats_summary(calculate_stats(combined_df)))


@app.command("diagnose")
def diagnose_command(
    export_file: Path = typer.Argument(..., help="Export JSON file to analyse"),
    output: Path = typer.Option(
        None, "--output", "-o", help="Write the report here instead of stdout"
    ),
    max_nodes: int = typer.Option(DiagnosticLimits().max_nodes, help="Node-visit ceiling"),
) -> None:
    """Write a privacy-safe structural report of an export."""
    logging.basicConfig(level=logging.INFO)

    try:
        root = load_export_json(export_file)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    report = diagnose(root, limits=DiagnosticLimits(max_nodes=max_nodes))
    text = format_report_for_download(report)
    if output is None:
        typer.echo(text)
    else:
        output.write_text(text, encoding="utf-8")
        logger.info(f"Wrote diagnostic report to {output}")


if __name__ == "__main__":
    app()
