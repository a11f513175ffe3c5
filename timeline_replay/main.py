"""HTTP service and CLI entry point for Timeline Replay."""

import logging
import signal
import sys
from typing import Any

import typer
import uvicorn
from fastapi import Body, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from timeline_replay.core.backend_frontend_shared_schema import (
    ExtractResponse,
    PointRecord,
    PrivacyLevelResponse,
    ReportForm,
)
from timeline_replay.core.limits import DiagnosticLimits, ScanLimits
from timeline_replay.core.report_schema import DiagnosticReport
from timeline_replay.core.schema import points_to_df
from timeline_replay.diagnostics.diagnostic_walker import diagnose
from timeline_replay.diagnostics.report_text import (
    format_report_for_clipboard,
    format_report_for_download,
)
from timeline_replay.ingestion.extractor import NoPointsFound, extract
from timeline_replay.postprocess.privacy import (
    PRIVACY_LEVELS,
    get_privacy_level_by_id,
    obfuscate_points,
)
from timeline_replay.postprocess.stats import calculate_stats

# Configure logging with IDE-clickable file paths
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s %(pathname)s:%(lineno)d %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Timeline Replay",
    description="Extracts time-ordered location samples from location history exports",
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler that logs full stack traces."""
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": f"Internal server error: {str(exc)}",
            "type": type(exc).__name__,
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.error(
        f"HTTP exception in {request.method} {request.url.path}: {exc.status_code} - {exc.detail}"
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.error(f"Validation error in {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


@app.get("/api/privacy_levels")
async def get_privacy_levels() -> list[PrivacyLevelResponse]:
    return [
        PrivacyLevelResponse(
            id=level.id,
            label=level.label,
            description=level.description,
            grid_size=level.grid_size,
        )
        for level in PRIVACY_LEVELS
    ]


# Sync handlers: FastAPI runs them in its threadpool.
@app.post("/api/extract")
def extract_endpoint(
    document: Any = Body(..., description="A decoded location history export"),
    privacy_level: str = Query("none", description="Id of a privacy level"),
    max_nodes: int = Query(ScanLimits().max_nodes, gt=0),
) -> ExtractResponse:
    """Extract, optionally obfuscate, and summarize the location samples in a document."""
    level = get_privacy_level_by_id(privacy_level)
    if level is None:
        raise HTTPException(status_code=400, detail=f"Unknown privacy level: {privacy_level}")

    try:
        points = extract(document, limits=ScanLimits(max_nodes=max_nodes))
    except NoPointsFound as e:
        raise HTTPException(status_code=422, detail=str(e))

    points = obfuscate_points(points, level.grid_size)
    stats = calculate_stats(points_to_df(points))
    logger.info(f"Extracted {len(points)} points with {privacy_level=}")
    return ExtractResponse(
        privacy_level=level.id,
        points=[
            PointRecord(lat=point.lat, lng=point.lng, ts_ms=point.ts_ms, year=point.year)
            for point in points
        ],
        stats=stats,
    )


@app.post("/api/diagnose")
def diagnose_endpoint(
    document: Any = Body(..., description="A decoded location history export"),
    max_nodes: int = Query(DiagnosticLimits().max_nodes, gt=0),
) -> DiagnosticReport:
    return diagnose(document, limits=DiagnosticLimits(max_nodes=max_nodes))


@app.post("/api/diagnose/text", response_class=PlainTextResponse)
def diagnose_text_endpoint(
    document: Any = Body(..., description="A decoded location history export"),
    form: ReportForm = Query(ReportForm.DOWNLOAD),
) -> str:
    """Diagnostic report rendered for saving to a file or pasting into an issue."""
    report = diagnose(document)
    if form == ReportForm.CLIPBOARD:
        return format_report_for_clipboard(report)
    return format_report_for_download(report)


# https://github.com/fastapi/typer/issues/341
typer.main.get_command_name = lambda name: name

cli = typer.Typer(
    help="Timeline Replay - location history extraction and diagnostics",
    pretty_exceptions_show_locals=False,
    pretty_exceptions_enable=False,
)


@cli.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    """Timeline Replay - location history extraction and diagnostics."""
    pass


@cli.command("serve")
def serve(
    port: int = typer.Option(8000, help="Port to serve on"),
    host: str = typer.Option("localhost", help="Host to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """Start the Timeline Replay HTTP service."""

    def signal_handler(signum: int, frame: Any) -> None:
        typer.echo(f"Shutting down Timeline Replay {signal.Signals(signum).name=}...")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    typer.echo(f"Starting Timeline Replay on http://{host}:{port}")
    uvicorn.run(
        app,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
        timeout_graceful_shutdown=2,
        timeout_keep_alive=1,
    )


def main() -> None:
    """Entry point for the CLI application."""
    cli()


if __name__ == "__main__":
    main()
