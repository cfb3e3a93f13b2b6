"""
Theme Sources - Read-only providers of the current theme list.

The aggregator reads the theme list at the start of every cycle. The
HTTP layer uses exists() to tell an unknown theme ID from a known theme
that simply has no articles yet.

File format (YAML):

    themes:
      - themeID: 1
        keywords: [sakura, spring]
      - themeID: 2
        keywords: []
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import yaml

from .exceptions import ThemeSourceError
from .models import Theme


logger = logging.getLogger(__name__)


class ThemeSource(ABC):
    """Abstract theme provider."""

    @abstractmethod
    async def get_all_themes(self) -> list[Theme]:
        """Return every theme, in registry order. Raise ThemeSourceError on failure."""
        pass

    @abstractmethod
    def exists(self, theme_id: int) -> bool:
        """Check whether a theme ID is known."""
        pass


class StaticThemeSource(ThemeSource):
    """In-memory theme list."""

    def __init__(self, themes: Optional[Iterable[Theme]] = None) -> None:
        self._themes: list[Theme] = list(themes or [])

    async def get_all_themes(self) -> list[Theme]:
        return list(self._themes)

    def exists(self, theme_id: int) -> bool:
        return any(t.theme_id == theme_id for t in self._themes)

    def set_themes(self, themes: Iterable[Theme]) -> None:
        """Replace the theme list. Takes effect from the next cycle."""
        self._themes = list(themes)


def parse_themes(data: Any) -> list[Theme]:
    """Parse the loaded YAML document into Theme values."""
    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("themes") or []
    if not isinstance(data, list):
        raise ThemeSourceError("themes document must be a list or {themes: [...]}")

    themes: list[Theme] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ThemeSourceError(f"theme #{index} is not a mapping")
        try:
            themes.append(Theme.from_dict(entry))
        except (TypeError, ValueError) as e:
            raise ThemeSourceError(f"theme #{index} is invalid: {e}")
    return themes


class FileThemeSource(ThemeSource):
    """
    Themes loaded from a YAML file.

    The file is re-read on every get_all_themes() call so edits are
    picked up by the next cycle. exists() answers from the last
    successful load.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._cached: list[Theme] = []

    def load(self) -> list[Theme]:
        """Read and parse the file synchronously."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise ThemeSourceError(
                f"Cannot read themes file: {e}",
                source_name=str(self.path),
            )

        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ThemeSourceError(
                f"Invalid YAML in themes file: {e}",
                source_name=str(self.path),
            )

        themes = parse_themes(document)
        self._cached = themes
        logger.debug(f"Loaded {len(themes)} themes from {self.path}")
        return list(themes)

    async def get_all_themes(self) -> list[Theme]:
        return await asyncio.to_thread(self.load)

    def exists(self, theme_id: int) -> bool:
        return any(t.theme_id == theme_id for t in self._cached)
