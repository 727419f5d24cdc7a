"""
Student Requirements Portal — Main Entry Point

Submit requirement files from the command line (files are attached to the
checklist items in order):
    python -m requirements_portal.main letter.pdf resume.pdf grades.pdf ...

Run the in-memory requirements API server:
    python -m requirements_portal.main --serve
    # or: uvicorn requirements_portal.api:app --reload --port 8000

Or drive the engine programmatically:
    from requirements_portal.main import run
    state = run(["letter.pdf", ...], user_id="2021-00123")
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone

from requirements_portal.config import get_settings
from requirements_portal.models.schemas import SelectedFile
from requirements_portal.models.state import RequirementsFormState
from requirements_portal.orchestration.engine import RequirementsEngine
from requirements_portal.persistence.kv_store import create_store
from requirements_portal.services.identity import static_identity
from requirements_portal.services.requirements_api import RequirementsApiClient
from requirements_portal.utils.logger import setup_logging


async def _run(file_paths: list[str], user_id: str | None) -> RequirementsFormState:
    settings = get_settings()
    identity = static_identity(user_id=user_id)
    engine = RequirementsEngine(
        identity,
        RequirementsApiClient(identity, settings=settings),
        create_store(settings),
        settings=settings,
    )
    await engine.mount()

    for item, path in zip(engine.state.items, file_paths):
        await engine.attach(item.id, [SelectedFile.from_path(path)])

    if file_paths:
        await engine.submit()
    await engine.drain_background()
    return engine.state


def run(file_paths: list[str] | None = None, user_id: str | None = None) -> RequirementsFormState:
    """Attach the given files, submit, and return the final form state."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("  STUDENT REQUIREMENTS SUBMISSION")
    logger.info(f"  API: {settings.api_base_url} | Started: {datetime.now(timezone.utc).isoformat()}")
    logger.info("=" * 60)

    state = asyncio.run(_run(file_paths or [], user_id))
    _print_summary(state)
    return state


def _print_summary(state: RequirementsFormState) -> None:
    """Log a human-readable summary of the form after the run."""
    logger = logging.getLogger(__name__)

    logger.info("-" * 60)
    logger.info("  REQUIREMENTS SUMMARY")
    logger.info("-" * 60)
    logger.info(f"  Mode:           {state.mode.value}")
    logger.info(f"  Items:          {len(state.items)}")
    logger.info(f"  Staged removals:{state.removal_count:>3}")
    if state.success_message:
        logger.info(f"  Result:         {state.success_message}")
    if state.form_error:
        logger.info(f"  Error:          {state.form_error}")
    if state.storage_warning:
        logger.info(f"  Storage:        {state.storage_warning}")
    logger.info("-" * 60)

    for item in state.items:
        file_desc = f"{item.file.name} ({item.file.size} bytes)" if item.file else "<missing>"
        error = state.errors.get(item.id)
        logger.info(f"    {item.id:<8} | {item.text[:40]:<40} | {file_desc}" + (f" | {error}" if error else ""))
    logger.info("")


def serve(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Start the requirements API server."""
    import uvicorn

    setup_logging(get_settings().log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run("requirements_portal.api:app", host=host, port=port, reload=True)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Student requirements submission")
    parser.add_argument("files", nargs="*", help="files to attach, in checklist order")
    parser.add_argument("--user", default=None, help="user id used to scope drafts")
    parser.add_argument("--serve", action="store_true", help="run the requirements API server")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args(argv)

    if args.serve:
        serve(port=args.port)
    else:
        run(args.files, user_id=args.user)


if __name__ == "__main__":
    main()
