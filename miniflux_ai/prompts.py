"""
Custom prompt loading.

Prompt files live in a single directory and follow the naming convention
``custom-prompt-<category>.md``. The category name is taken from the filename
and the file body is used verbatim as the oracle instructions for entries in
any Miniflux category whose title contains that name.

Prompts are read once at startup; edits require a restart.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from .core.types import CustomPrompt
from .logging_utils import LOGGER_NAME, log_debug_dump


logger = logging.getLogger(f"{LOGGER_NAME}.prompts")


class PromptSet:
    """Immutable snapshot of the custom prompts loaded at startup."""

    def __init__(self, prompts: list[CustomPrompt] | tuple[CustomPrompt, ...]):
        self._prompts = tuple(prompts)

    @property
    def prompts(self) -> tuple[CustomPrompt, ...]:
        return self._prompts

    @property
    def categories(self) -> list[str]:
        return [prompt.category for prompt in self._prompts]

    def __iter__(self) -> Iterator[CustomPrompt]:
        return iter(self._prompts)

    def __len__(self) -> int:
        return len(self._prompts)

    def match(self, title: str) -> CustomPrompt | None:
        """Return the first prompt whose category name appears in ``title``."""
        for prompt in self._prompts:
            if prompt.matches(title):
                return prompt
        return None


def load_custom_prompts(
    directory: str | Path,
    prefix: str = "custom-prompt-",
    suffix: str = ".md",
) -> PromptSet:
    """Scan ``directory`` for prompt files and read them.

    Files are processed in sorted order so that the first match for a title
    is stable across restarts.

    Args:
        directory: Directory containing prompt files
        prefix: Filename prefix preceding the category name
        suffix: Filename suffix following the category name

    Returns:
        PromptSet snapshot

    Raises:
        FileNotFoundError: If the directory does not exist
        OSError: If a prompt file cannot be read
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Prompt directory not found: {root}")

    prompts: list[CustomPrompt] = []
    for path in sorted(root.iterdir()):
        name = path.name
        if not (name.startswith(prefix) and name.endswith(suffix)):
            continue
        if not path.is_file():
            continue
        category = name[len(prefix) : len(name) - len(suffix)]
        if not category:
            logger.warning("Ignoring prompt file without category name: %s", name)
            continue
        prompts.append(CustomPrompt(category=category, content=path.read_text(encoding="utf-8")))

    if prompts:
        logger.info("Loaded %d custom prompt(s): %s", len(prompts), ", ".join(p.category for p in prompts))
    else:
        logger.warning("No custom prompts found in %s; every category will be skipped", root)
    log_debug_dump(logger, "customPromptContent", [p.to_dict() for p in prompts])

    return PromptSet(prompts)
