"""
Workspace builder for create-ttpg-package.

The build is an ordered list of stages. Each stage runs only after the
previous one finished; a fatal stage failure stops the run with a
``StageError`` naming the stage, a soft failure is recorded as a warning and
the run continues. Nothing already created is removed on failure.
"""

import json
import os
import shutil
import subprocess
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .answers import ProjectConfig
from .tracker import StepTracker

# Constants
TEMPLATES_ROOT = Path(__file__).parent / "templates"
ASSET_DIRS = ("Fonts", "Models", "Sounds", "States", "Templates", "Textures", "Thumbnails")
TEMPLATE_RENAMES = {
    "javascript": (
        ("gitignore", ".gitignore"),
        ("template.json", "package.json"),
    ),
    "typescript": (
        ("gitignore", ".gitignore"),
        ("template.json", "package.json"),
        ("tsconfig.template.json", "tsconfig.json"),
    ),
}
PROJECT_CONFIG_FILENAME = "ttpgcfg.project.json"
LOCAL_CONFIG_FILENAME = "ttpgcfg.local.json"
MANIFEST_FILENAME = "Manifest.json"
DEFAULT_PACKAGE_MANAGER = "yarn"


@dataclass(frozen=True)
class ScaffoldSettings:
    """Fixed tables and tools the builder works with."""

    templates_root: Path = TEMPLATES_ROOT
    asset_dirs: tuple[str, ...] = ASSET_DIRS
    template_renames: dict = field(default_factory=lambda: TEMPLATE_RENAMES)
    package_manager: str = DEFAULT_PACKAGE_MANAGER

    @classmethod
    def from_env(cls) -> "ScaffoldSettings":
        return cls(package_manager=(os.getenv("TTPG_PACKAGE_MANAGER") or "").strip() or DEFAULT_PACKAGE_MANAGER)


class StageError(RuntimeError):
    """A fatal stage failure. The original exception is chained as ``__cause__``."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.message = message

    @property
    def exit_code(self) -> int:
        returncode = getattr(self.__cause__, "returncode", None)
        return returncode if isinstance(returncode, int) and returncode > 0 else 1


class SoftFailure(Exception):
    """Raised by a soft stage for a sub-action that failed without aborting the build."""


@dataclass
class StageResult:
    key: str
    status: str  # done | warning | error | skipped
    detail: str = ""


@dataclass(frozen=True)
class Stage:
    key: str
    label: str
    action: Callable[["BuildContext"], Optional[str]]
    fatal: bool = True


@dataclass
class BuildContext:
    config: ProjectConfig
    settings: ScaffoldSettings
    project_path: Path
    warnings: list[str] = field(default_factory=list)

    @property
    def assets_path(self) -> Path:
        return self.project_path / "assets"

    @property
    def dev_mirror_path(self) -> Path:
        return self.project_path / "dev" / f"{self.config.slug}_dev"


@dataclass
class BuildReport:
    project_path: Path
    results: list[StageResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def write_json(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)
        fh.write("\n")


def link_directory(target: Path, link: Path) -> None:
    """Create a directory link at ``link`` pointing to ``target``.

    Windows gets a junction, which needs no elevated rights.
    """
    if os.name == "nt":
        subprocess.run(
            ["cmd", "/c", "mklink", "/J", str(link), str(target)],
            check=True,
            capture_output=True,
            text=True,
        )
    else:
        link.symlink_to(target, target_is_directory=True)


def _for_each_asset_dir(ctx: BuildContext, fn: Callable[[str], None]) -> None:
    """Run ``fn`` for every asset dir concurrently and re-raise the first failure."""
    with ThreadPoolExecutor(max_workers=len(ctx.settings.asset_dirs) or 1) as pool:
        futures = [pool.submit(fn, name) for name in ctx.settings.asset_dirs]
    for future in futures:
        future.result()


def create_project_dir(ctx: BuildContext) -> str:
    ctx.project_path.mkdir(parents=True, exist_ok=True)
    return str(ctx.project_path)


def copy_template(ctx: BuildContext) -> str:
    config = ctx.config
    template_dir = ctx.settings.templates_root / config.template
    if not template_dir.is_dir():
        raise FileNotFoundError(f"Template fixture does not exist: {template_dir}")

    shutil.copytree(template_dir, ctx.project_path, dirs_exist_ok=True)
    for placeholder, target in ctx.settings.template_renames.get(config.template, ()):
        (ctx.project_path / placeholder).replace(ctx.project_path / target)

    package_json = ctx.project_path / "package.json"
    with package_json.open("r", encoding="utf-8") as fh:
        manifest = json.load(fh)
    manifest["name"] = config.slug
    manifest["version"] = config.version
    write_json(package_json, manifest)
    return config.template


def create_asset_dirs(ctx: BuildContext) -> str:
    _for_each_asset_dir(ctx, lambda name: (ctx.assets_path / name).mkdir(parents=True, exist_ok=True))
    return f"{len(ctx.settings.asset_dirs)} directories"


def create_dev_mirror(ctx: BuildContext) -> str:
    config = ctx.config
    mirror = ctx.dev_mirror_path
    mirror.mkdir(parents=True, exist_ok=True)
    write_json(
        mirror / MANIFEST_FILENAME,
        {
            "Name": f"{config.title} (Dev)",
            "Version": config.version,
            "GUID": config.guids.dev,
        },
    )
    _for_each_asset_dir(ctx, lambda name: link_directory(ctx.assets_path / name, mirror / name))
    return str(mirror.relative_to(ctx.project_path))


def write_project_config(ctx: BuildContext) -> str:
    config = ctx.config
    write_json(
        ctx.project_path / PROJECT_CONFIG_FILENAME,
        {
            "name": config.title,
            "slug": config.slug,
            "version": config.version,
            "template": config.template,
            "guid": {
                "dev": config.guids.dev,
                "prd": config.guids.prd,
            },
        },
    )
    return PROJECT_CONFIG_FILENAME


def write_local_config(ctx: BuildContext) -> Optional[str]:
    """Write the local config and link the dev mirror into the TTPG package directory.

    Both parts are independent: either may fail and the other still runs.
    Returns ``None`` when there is no TTPG path, which marks the stage skipped.
    """
    ttpg_path = ctx.config.ttpg_path
    if ttpg_path is None:
        ctx.warnings.append("No TTPG path provided, you will need to run the setup script later")
        return None

    failures = []
    try:
        write_json(ctx.project_path / LOCAL_CONFIG_FILENAME, {"ttpg_path": str(ttpg_path)})
    except OSError as e:
        failures.append(f"Could not write local config file ({e}), you will need to run the setup script")

    link = Path(ttpg_path).resolve() / f"{ctx.config.slug}_dev"
    try:
        link_directory(ctx.dev_mirror_path, link)
    except (OSError, subprocess.CalledProcessError) as e:
        failures.append(f"Could not symlink to ttpg folder ({e}), you will need to run the setup script")

    if failures:
        ctx.warnings.extend(failures)
        raise SoftFailure("; ".join(failures))
    return str(link)


def install_dependencies(ctx: BuildContext) -> str:
    package_manager = ctx.settings.package_manager
    executable = shutil.which(package_manager) or package_manager
    subprocess.run(
        [executable, "install"],
        cwd=ctx.project_path,
        check=True,
        capture_output=True,
        text=True,
    )
    return f"{package_manager} install"


STAGES = (
    Stage("create-dir", "Create project folder", create_project_dir),
    Stage("copy-template", "Copy template", copy_template),
    Stage("create-assets", "Create asset directories", create_asset_dirs),
    Stage("create-dev-mirror", "Create dev mirror", create_dev_mirror),
    Stage("write-project-config", "Write project config", write_project_config),
    Stage("write-local-config", "Write local config", write_local_config, fatal=False),
    Stage("install-deps", "Install dependencies", install_dependencies),
)


def _describe(error: BaseException) -> str:
    if isinstance(error, subprocess.CalledProcessError):
        output = (error.stderr or error.stdout or "").strip()
        detail = f"exit code {error.returncode}"
        return f"{detail}: {output}" if output else detail
    return str(error) or error.__class__.__name__


def run_stage(stage: Stage, ctx: BuildContext, tracker: StepTracker | None = None) -> StageResult:
    """Run one stage and turn its outcome into a ``StageResult``.

    Fatal failures raise ``StageError``; soft ones come back as a warning.
    """
    if tracker:
        tracker.start(stage.key)
    try:
        detail = stage.action(ctx)
    except Exception as e:
        message = _describe(e)
        if stage.fatal:
            if tracker:
                tracker.error(stage.key, message)
            raise StageError(stage.key, message) from e
        if not isinstance(e, SoftFailure):
            ctx.warnings.append(f"{stage.label} failed: {message}")
        if tracker:
            tracker.warn(stage.key, message)
        return StageResult(stage.key, "warning", message)

    if detail is None:
        if tracker:
            tracker.skip(stage.key, "no TTPG path")
        return StageResult(stage.key, "skipped")
    if tracker:
        tracker.complete(stage.key, detail)
    return StageResult(stage.key, "done", detail)


def build_project(
    config: ProjectConfig,
    settings: ScaffoldSettings | None = None,
    *,
    cwd: Path | None = None,
    tracker: StepTracker | None = None,
    stages: tuple[Stage, ...] = STAGES,
) -> BuildReport:
    """Create the workspace for ``config`` under ``cwd``.

    Raises:
        StageError: a fatal stage failed; later stages were not run.
    """
    settings = settings or ScaffoldSettings()
    project_path = (cwd or Path.cwd()).resolve() / config.directory_name
    ctx = BuildContext(config=config, settings=settings, project_path=project_path)
    report = BuildReport(project_path=project_path, warnings=ctx.warnings)

    if tracker:
        for stage in stages:
            tracker.add(stage.key, stage.label)

    for stage in stages:
        report.results.append(run_stage(stage, ctx, tracker))
    return report
