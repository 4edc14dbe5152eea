"""
Answer resolution for create-ttpg-package.

Turns the raw command line tokens, the ``-y`` flag and interactive answers
into a single immutable ``ProjectConfig``.
"""

import re
import sys
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

import typer

# Constants
TEMPLATE_ALIASES = {
    "javascript": "javascript",
    "typescript": "typescript",
    "js": "javascript",
    "ts": "typescript",
}
DEFAULT_TEMPLATE = "javascript"
DEFAULT_VERSION = "0.0.1"
# Parsed by the command itself, never part of the raw tokens it passes on
COMMAND_FLAGS = frozenset({"-y", "--yes", "--debug"})

# Probed in order, first existing directory wins
TTPG_PATH_CANDIDATES: Mapping[str, tuple[str, ...]] = {
    "darwin": (
        "~/Library/Application Support/Epic/TabletopPlayground/Package",
    ),
    "win32": (
        r"C:\Program Files (x86)\Steam\steamapps\common\TabletopPlayground\TabletopPlayground\PersistentDownloadDir",
        r"C:\Program Files\Epic Games\TabletopPlayground\TabletopPlayground\PersistentDownloadDir",
        r"C:\XboxGames\Tabletop Playground\Content\TabletopPlayground\PersistentDownloadDir",
    ),
}

Ask = Callable[[str], str]


@dataclass(frozen=True)
class ProjectGuids:
    dev: str
    prd: str


@dataclass(frozen=True)
class ProjectConfig:
    """Fully resolved answers for one run. Built once, read-only afterwards."""

    project_id: str
    title: str
    slug: str
    directory_name: str
    template: str
    version: str
    guids: ProjectGuids
    ttpg_path: Optional[Path] = None
    auto_confirm: bool = False


@dataclass(frozen=True)
class CliTokens:
    project_id: Optional[str]
    template: str


def generate_guid() -> str:
    """Return a random 128-bit id as 32 uppercase hex characters."""
    return uuid.uuid4().hex.upper()


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def suggest_ttpg_path(
    platform: str | None = None,
    candidates: Mapping[str, Sequence[str]] = TTPG_PATH_CANDIDATES,
) -> Optional[Path]:
    """Return the first known Tabletop Playground package directory that exists."""
    platform = platform or sys.platform
    for candidate in candidates.get(platform, ()):
        path = Path(candidate).expanduser()
        if _is_dir(path):
            return path
    return None


def parse_cli_tokens(tokens: Sequence[str]) -> CliTokens:
    """Pick the project id and ``--template`` value out of raw argument tokens.

    The token following ``--template`` is its value unless it is missing or is
    itself a flag, in which case the default template is used.

    Raises:
        typer.BadParameter: a flag other than ``--template`` or the options
            the command declares itself.
    """
    project_id = None
    template = DEFAULT_TEMPLATE
    skip_next = False
    for index, token in enumerate(tokens):
        if skip_next:
            skip_next = False
            continue
        if token == "--template":
            following = tokens[index + 1] if index + 1 < len(tokens) else None
            if following is not None and not following.startswith("-"):
                template = following
                skip_next = True
            continue
        if token.startswith("--template="):
            template = token.split("=", 1)[1] or DEFAULT_TEMPLATE
            continue
        if token in COMMAND_FLAGS:
            continue
        if token.startswith("-"):
            raise typer.BadParameter(f"unknown option '{token}'")
        if project_id is None:
            project_id = token
    return CliTokens(project_id=project_id, template=template)


def normalize_template(template: str | None) -> str:
    key = (template or DEFAULT_TEMPLATE).strip().lower()
    if key not in TEMPLATE_ALIASES:
        raise typer.BadParameter(
            f"unknown template '{template}'. Choose from {', '.join(TEMPLATE_ALIASES)}."
        )
    return TEMPLATE_ALIASES[key]


def slugify(title: str) -> str:
    """Lowercase ``title`` with every run of non-word characters turned into ``-``."""
    return re.sub(r"\W+", "-", title).lower()


def resolve_with_default(question: str, suggested, auto_confirm: bool, ask: Ask):
    """Accept ``suggested`` outright, or ask and fall back to it on an empty answer."""
    if auto_confirm:
        return suggested
    hint = f" [{suggested}]" if suggested not in (None, "") else ""
    answer = (ask(f"{question}{hint}: ") or "").strip()
    return answer if answer else suggested


def resolve_answers(
    project_id: Optional[str],
    template: Optional[str],
    auto_confirm: bool,
    ask: Ask,
    suggest_path: Callable[[], Optional[Path]] | None = None,
) -> ProjectConfig:
    """Build the ``ProjectConfig`` for this run.

    Raises:
        typer.BadParameter: unknown template, or no project title given.
    """
    normalized_template = normalize_template(template)

    if project_id:
        title = project_id
        slug = project_id
        directory_name = project_id
    else:
        title = (ask("What is your package's title? ") or "").strip()
        if not title:
            raise typer.BadParameter("project title is required")
        project_id = title
        slug = resolve_with_default(
            "Provide a slug for your package (or 'enter' to use the provided value)",
            slugify(title),
            auto_confirm,
            ask,
        )
        directory_name = slug

    dev_guid = resolve_with_default(
        "Provide a development GUID for your package (or 'enter' to use the provided value)",
        generate_guid(),
        auto_confirm,
        ask,
    )
    prd_guid = resolve_with_default(
        "Provide a production GUID for your package (or 'enter' to use the provided value)",
        generate_guid(),
        auto_confirm,
        ask,
    )
    ttpg_path = resolve_with_default(
        "What is your TTPG path",
        (suggest_path or suggest_ttpg_path)(),
        auto_confirm,
        ask,
    )
    version = resolve_with_default(
        "What version is your package",
        DEFAULT_VERSION,
        auto_confirm,
        ask,
    )

    return ProjectConfig(
        project_id=project_id,
        title=title,
        slug=slug,
        directory_name=directory_name,
        template=normalized_template,
        version=version,
        guids=ProjectGuids(dev=dev_guid, prd=prd_guid),
        ttpg_path=Path(ttpg_path).expanduser() if ttpg_path else None,
        auto_confirm=auto_confirm,
    )
