import logging
from enum import Enum
from pathlib import Path
from string import Formatter
from typing import Callable, Optional

import requests
from rich import get_console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TransferSpeedColumn,
)

from bsgenome_forge.errors import ConfigError, FetchError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20
URL_FIELDS = ("base_url", "chrom")
FORMATTER = Formatter()

Fetcher = Callable[[str, Path], None]


class FetchOutcome(str, Enum):
    FETCHED = "fetched"
    SKIPPED = "skipped"


def should_act(force: bool, artifact_exists: bool) -> bool:
    return force or not artifact_exists


def check_url_template(template: str) -> str:
    """Only bare {base_url} and {chrom} fields are allowed, without conversions or format specs."""
    try:
        parsed = list(FORMATTER.parse(template))
    except ValueError as exc:
        raise ConfigError(f"download.url_template is malformed: {exc}.") from exc
    for _, field_name, format_spec, conversion in parsed:
        if field_name is None:
            continue
        if field_name not in URL_FIELDS or format_spec or conversion:
            raise ConfigError(
                f"download.url_template has an unsupported placeholder '{{{field_name}}}'; "
                "use {base_url} and {chrom}."
            )
    return template


def chromosome_url(template: str, base_url: str, chrom: str) -> str:
    check_url_template(template)
    return template.format(base_url=base_url, chrom=chrom)


def content_length(resp: requests.Response) -> Optional[int]:
    value = resp.headers.get("Content-Length")
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def download_progress() -> Progress:
    console = get_console()
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
        disable=not console.is_terminal,
    )


def download_file(url: str, destination: Path, timeout: float) -> None:
    """
    Stream `url` into `destination`. The data lands in a temporary sibling
    first so an interrupted download never leaves a file behind.
    """
    tmp_path = destination.with_name(destination.name + ".part")
    try:
        with requests.get(url, stream=True, timeout=timeout) as resp:
            resp.raise_for_status()
            with download_progress() as progress, tmp_path.open("wb") as out_f:
                task = progress.add_task(destination.name, total=content_length(resp))
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    out_f.write(chunk)
                    progress.update(task, advance=len(chunk))
        tmp_path.replace(destination)
    except requests.RequestException as exc:
        raise FetchError(f"Download of {url} failed: {exc}") from exc
    except OSError as exc:
        raise FetchError(f"Could not write {destination}: {exc}") from exc
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def http_fetcher(timeout: float) -> Fetcher:
    def fetch(url: str, destination: Path) -> None:
        download_file(url, destination, timeout)

    return fetch


def ensure_fetched(url: str, destination: Path, force: bool, fetcher: Fetcher, label: str = "sequence") -> FetchOutcome:
    if not should_act(force, destination.exists()):
        logger.info("File %s already exists. Skipping (use -f to force download).", destination)
        return FetchOutcome.SKIPPED

    logger.info("Downloading %s file %s.", label, destination)
    fetcher(url, destination)
    return FetchOutcome.FETCHED
