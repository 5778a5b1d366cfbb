"""
Text source resolution.

Turns a locator (http(s) URL, file:// URL or filesystem path) into a
stream of text lines. Anything that prevents the source from being read
is reported as SourceUnavailableError.
"""

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from functools import partial
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests

from covidbatch.errors import SourceUnavailableError
from covidbatch.utils.logging import get_logger

log = get_logger(__name__)

TextSource = Callable[[], AbstractContextManager[Iterator[str]]]

_HTTP_SCHEMES = {"http", "https"}


def _is_http(locator: str) -> bool:
    return urlparse(locator).scheme.lower() in _HTTP_SCHEMES


def _to_path(locator: str) -> Path:
    parsed = urlparse(locator)
    if parsed.scheme.lower() == "file":
        return Path(url2pathname(parsed.path))
    return Path(locator)


def _decode_lines(raw_lines: Iterator[bytes], locator: str, encoding: str) -> Iterator[str]:
    # Strict per-line decoding so a bad byte is reported with its line.
    for line_number, raw in enumerate(raw_lines, start=1):
        try:
            text = raw.decode(encoding)
        except UnicodeDecodeError as e:
            raise SourceUnavailableError(
                locator, f"line {line_number} is not valid {encoding}: {e}"
            ) from e
        yield text.rstrip("\r\n")


def _iter_response_lines(response: requests.Response, locator: str) -> Iterator[str]:
    encoding = response.encoding or "utf-8"
    try:
        yield from _decode_lines(response.iter_lines(), locator, encoding)
    except requests.RequestException as e:
        raise SourceUnavailableError(locator, f"stream interrupted: {e}") from e


def _iter_file_lines(handle: BinaryIO, locator: str) -> Iterator[str]:
    try:
        yield from _decode_lines(iter(handle), locator, "utf-8")
    except OSError as e:
        raise SourceUnavailableError(locator, str(e)) from e


@contextmanager
def _open_http(locator: str, timeout: float) -> Iterator[Iterator[str]]:
    log.info("Fetching source", url=locator)
    try:
        response = requests.get(locator, stream=True, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise SourceUnavailableError(locator, str(e)) from e

    try:
        yield _iter_response_lines(response, locator)
    finally:
        response.close()


@contextmanager
def _open_file(locator: str) -> Iterator[Iterator[str]]:
    path = _to_path(locator)
    log.info("Opening source", path=str(path))
    try:
        handle = path.open("rb")
    except OSError as e:
        raise SourceUnavailableError(locator, str(e)) from e

    with handle:
        yield _iter_file_lines(handle, locator)


def open_source(locator: str, *, timeout: float = 60.0) -> AbstractContextManager[Iterator[str]]:
    """
    Open a text source for line-by-line reading.

    Args:
        locator: http(s) URL, file:// URL or filesystem path.
        timeout: HTTP connect/read timeout in seconds.

    Returns:
        Context manager yielding an iterator of lines without line endings.
        The underlying response or file is closed on exit.

    Raises:
        SourceUnavailableError: On entering the context if the source cannot
            be opened, or while iterating if the stream breaks or a line
            does not decode (HTTP uses the response charset, else UTF-8;
            files are always UTF-8).
    """
    if _is_http(locator):
        return _open_http(locator, timeout)
    return _open_file(locator)


def source_for(locator: str, *, timeout: float = 60.0) -> TextSource:
    """Bind a locator into a reusable opener (one fresh stream per call)."""
    return partial(open_source, locator, timeout=timeout)
