"""Wordlist loader: builds a HashIndex from weak-password sources.

A source is either a local file path or an ``http(s)://`` URL. Each source is
read as bytes, line by line; every line is decoded on its own (UTF-8, then
cp1252, then latin-1), hashed with the injected hash function and inserted
into the HashIndex. Blank lines are skipped and counted, never hashed, so an
empty key can never reach the index.

Failure policy:
  - A missing or unreadable source is a SourceUnavailable. It is logged,
    recorded in LoadSummary.failed_sources, and loading moves on.
  - A source that breaks partway keeps the entries already inserted, and its
    partial LoadStats are added to the summary so counters match the index.
  - Whether an index with zero wordlist entries is fatal is the caller's
    decision (see credaudit.audit.build_index).
"""

from __future__ import annotations

import codecs
from typing import Iterable, Iterator, Optional, Union

import httpx

from credaudit.constants import WORDLIST_FETCH_TIMEOUT_S
from credaudit.errors import SourceUnavailable
from credaudit.index.hash_index import HashIndex
from credaudit.index.hashing import HashFn
from credaudit.models.account import LoadStats, LoadSummary
from credaudit.utils.logger import get_logger

logger = get_logger(__name__)

_URL_SCHEMES = ("http://", "https://")


def decode_line(raw: bytes) -> tuple[str, bool]:
    """Decode one wordlist line.

    Breach corpora mix UTF-8 with legacy Windows code pages, sometimes within
    one file, so each line is decoded on its own. Replacement characters are
    never produced: a password hashed from them would match nobody.

    Returns:
        (text, legacy) where legacy is True when the line was not UTF-8.
    """
    try:
        return raw.decode("utf-8"), False
    except UnicodeDecodeError:
        pass
    try:
        return raw.decode("cp1252"), True
    except UnicodeDecodeError:
        # cp1252 leaves five bytes undefined; latin-1 maps all 256
        return raw.decode("latin-1"), True


def _split_lines(chunks: Iterable[bytes]) -> Iterator[bytes]:
    buffer = b""
    for chunk in chunks:
        buffer += chunk
        *lines, buffer = buffer.split(b"\n")
        yield from lines
    if buffer:
        yield buffer


class WordlistLoader:
    """Hashes wordlist lines into a HashIndex and tracks duplicates.

    Usage:
        index = HashIndex.with_sentinel(fmt.blank_hash)
        loader = WordlistLoader(fmt.hash_fn)
        summary = loader.load_sources(["weak-passwords.txt"], index)

    Args:
        hash_fn:     cleartext -> hex digest, same representation as the directory.
        http_client: Optional httpx.Client for URL sources. When omitted a
                     short-lived client is created per URL.
    """

    def __init__(self, hash_fn: HashFn, http_client: Optional[httpx.Client] = None) -> None:
        self._hash_fn = hash_fn
        self._http_client = http_client

    # ── Core ──────────────────────────────────────────────────────────────────

    def load(
        self,
        lines: Iterable[Union[str, bytes]],
        index: HashIndex,
        source: str = "<memory>",
        stats: Optional[LoadStats] = None,
    ) -> LoadStats:
        """Hash every non-blank line of ``lines`` into ``index``.

        ``lines`` may hold text or raw bytes; bytes go through decode_line().
        Line terminators and a leading byte order mark are stripped; other
        whitespace is part of the password. Whitespace-only lines are counted
        in ``empty_lines_skipped``, a False from try_insert() in
        ``duplicates_skipped``.

        ``stats`` is updated in place as lines are consumed, so a caller that
        passes its own instance still sees the counts if ``lines`` raises.
        """
        if stats is None:
            stats = LoadStats(source=source)
        for raw in lines:
            stats.lines_seen += 1
            first = stats.lines_seen == 1
            if isinstance(raw, bytes):
                if first and raw.startswith(codecs.BOM_UTF8):
                    raw = raw[len(codecs.BOM_UTF8):]
                line, legacy = decode_line(raw)
                if legacy:
                    stats.non_utf8_lines += 1
            else:
                line = raw
            line = line.rstrip("\r\n")
            if first:
                line = line.lstrip("\ufeff")
            if not line.strip():
                stats.empty_lines_skipped += 1
                continue
            if index.try_insert(self._hash_fn(line), line):
                stats.entries_added += 1
            else:
                stats.duplicates_skipped += 1
        return stats

    # ── Named sources ─────────────────────────────────────────────────────────

    def load_source(
        self,
        source: str,
        index: HashIndex,
        stats: Optional[LoadStats] = None,
    ) -> LoadStats:
        """Load one named source (file path or URL).

        Raises:
            SourceUnavailable: If the source cannot be opened, or breaks while
                               being read. Lines read before a break stay in
                               ``index`` and are counted in ``stats``.
        """
        if stats is None:
            stats = LoadStats(source=source)
        if source.lower().startswith(_URL_SCHEMES):
            return self.load(self._iter_url(source), index, source=source, stats=stats)
        return self.load(self._iter_file(source), index, source=source, stats=stats)

    def load_sources(self, sources: Iterable[str], index: HashIndex) -> LoadSummary:
        """Load every source in order. Never raises for an unavailable source."""
        summary = LoadSummary()
        for source in sources:
            stats = LoadStats(source=source)
            try:
                self.load_source(source, index, stats=stats)
            except SourceUnavailable as exc:
                summary.failed_sources.append(source)
                if stats.lines_seen == 0:
                    logger.error(
                        "Wordlist source unavailable; continuing with remaining sources",
                        source=source,
                        reason=exc.reason,
                    )
                    continue
                summary.add(stats)
                logger.error(
                    "Wordlist source failed partway; keeping entries already read",
                    source=source,
                    reason=exc.reason,
                    lines_seen=stats.lines_seen,
                    entries_added=stats.entries_added,
                )
                continue
            summary.add(stats)
            logger.info(
                "Wordlist loaded",
                source=source,
                lines_seen=stats.lines_seen,
                entries_added=stats.entries_added,
                duplicates_skipped=stats.duplicates_skipped,
                empty_lines_skipped=stats.empty_lines_skipped,
                non_utf8_lines=stats.non_utf8_lines,
            )
        return summary

    # ── Readers ───────────────────────────────────────────────────────────────

    def _iter_file(self, path: str) -> Iterator[bytes]:
        try:
            with open(path, "rb") as fh:
                yield from fh
        except FileNotFoundError:
            raise SourceUnavailable(path, "file not found") from None
        except OSError as exc:
            raise SourceUnavailable(path, str(exc)) from exc

    def _iter_url(self, url: str) -> Iterator[bytes]:
        client = self._http_client or httpx.Client(timeout=WORDLIST_FETCH_TIMEOUT_S)
        try:
            with client.stream("GET", url, follow_redirects=True) as response:
                response.raise_for_status()
                yield from _split_lines(response.iter_bytes())
        except httpx.HTTPStatusError as exc:
            raise SourceUnavailable(url, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise SourceUnavailable(url, f"{type(exc).__name__}: {exc}") from exc
        finally:
            if self._http_client is None:
                client.close()
