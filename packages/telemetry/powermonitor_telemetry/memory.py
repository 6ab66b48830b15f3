"""Physical memory total and used estimate from sysctl and vm_stat.

Both queries are best-effort: any failure is logged and reported as 0 so
that memory never aborts a measurement.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Sequence

from .runner import CommandLaunchError, ProcessRunner


logger = logging.getLogger(__name__)

_PAGE_SIZE_HEADER = re.compile(r"page size of (\d+) bytes")


@dataclass(frozen=True)
class MemoryProfile:
    """Page size and the vm_stat labels that count as used memory.

    ``page_size == 0`` reads the size from the vm_stat header and falls back
    to ``default_page_size`` when the header is missing.
    """

    name: str
    page_size: int
    used_categories: tuple[str, ...]
    default_page_size: int = 16384


APPLE_SILICON = MemoryProfile(
    name="apple_silicon",
    page_size=16384,
    used_categories=(
        "Pages active",
        "Anonymous pages",
        "Pages occupied by compressor",
        "Pages wired down",
    ),
    default_page_size=16384,
)

INTEL = MemoryProfile(
    name="intel",
    page_size=4096,
    used_categories=(
        "Pages active",
        "Pages inactive",
        "Pages occupied by compressor",
        "Pages wired down",
    ),
    default_page_size=4096,
)

PROFILES = {p.name: p for p in (APPLE_SILICON, INTEL)}


def resolve_profile(
    name: str = APPLE_SILICON.name,
    page_size: int | None = None,
    used_categories: Sequence[str] | None = None,
) -> MemoryProfile:
    profile = PROFILES.get(name, APPLE_SILICON)
    if page_size is not None:
        profile = replace(profile, page_size=max(0, int(page_size)))
    if used_categories is not None:
        profile = replace(profile, used_categories=tuple(str(c) for c in used_categories))
    return profile


def parse_total_memory(text: str) -> int:
    try:
        value = int(text.strip())
    except ValueError:
        return 0
    return max(0, value)


def header_page_size(text: str) -> int | None:
    match = _PAGE_SIZE_HEADER.search(text)
    return int(match.group(1)) if match else None


def parse_used_memory(text: str, profile: MemoryProfile) -> int:
    page_size = profile.page_size or header_page_size(text) or profile.default_page_size
    wanted = set(profile.used_categories)
    used = 0
    for line in text.splitlines():
        label, sep, value = line.partition(":")
        if not sep or label.strip() not in wanted:
            continue
        try:
            pages = int(value.strip().rstrip("."))
        except ValueError:
            continue
        if pages < 0:
            continue
        used += pages * page_size
    return used


class MemoryInspector:
    def __init__(
        self,
        runner: ProcessRunner | None = None,
        profile: MemoryProfile = APPLE_SILICON,
        timeout_s: float | None = None,
    ) -> None:
        self.runner = runner or ProcessRunner()
        self.profile = profile
        self.timeout_s = timeout_s

    def _query(self, command: str, args: Sequence[str]) -> str | None:
        try:
            result = self.runner.run(command, args, timeout_s=self.timeout_s)
        except CommandLaunchError as exc:
            logger.warning("memory query %s unavailable: %s", command, exc.reason)
            return None
        if not result.ok:
            logger.warning("memory query %s exited with status %d", command, result.returncode)
        return result.stdout_text

    def total_memory(self) -> int:
        text = self._query("sysctl", ["-n", "hw.memsize"])
        return parse_total_memory(text) if text is not None else 0

    def used_memory(self) -> int:
        text = self._query("vm_stat", [])
        return parse_used_memory(text, self.profile) if text is not None else 0

    def read(self) -> tuple[int, int]:
        """Return ``(total, used)``; the two queries run side by side."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="memory-query") as pool:
            total = pool.submit(self.total_memory)
            used = pool.submit(self.used_memory)
            return total.result(), used.result()
