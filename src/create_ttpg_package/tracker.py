from dataclasses import dataclass

from rich.markup import escape
from rich.tree import Tree


@dataclass
class Step:
    label: str
    status: str = "pending"
    detail: str = ""


class StepTracker:
    """Track scaffolding stages and render them as a rich tree.

    Steps keep insertion order. An attached refresh callback is called after
    every change so a ``Live`` display can redraw.
    """

    SYMBOLS = {
        "pending": "[green dim]○[/green dim]",
        "running": "[cyan]○[/cyan]",
        "done": "[green]●[/green]",
        "warning": "[yellow]●[/yellow]",
        "error": "[red]●[/red]",
        "skipped": "[yellow]○[/yellow]",
    }

    def __init__(self, title: str):
        self.title = title
        self.steps: dict[str, Step] = {}
        self._refresh_cb = None

    def attach_refresh(self, cb):
        self._refresh_cb = cb

    def add(self, key: str, label: str):
        if key not in self.steps:
            self.steps[key] = Step(label)
            self._changed()

    def start(self, key: str, detail: str = ""):
        self._set(key, "running", detail)

    def complete(self, key: str, detail: str = ""):
        self._set(key, "done", detail)

    def warn(self, key: str, detail: str = ""):
        self._set(key, "warning", detail)

    def error(self, key: str, detail: str = ""):
        self._set(key, "error", detail)

    def skip(self, key: str, detail: str = ""):
        self._set(key, "skipped", detail)

    def status_of(self, key: str) -> str | None:
        step = self.steps.get(key)
        return step.status if step else None

    def _set(self, key: str, status: str, detail: str):
        step = self.steps.setdefault(key, Step(key))
        step.status = status
        # an update without detail keeps the previous one
        step.detail = detail or step.detail
        self._changed()

    def _changed(self):
        if self._refresh_cb:
            self._refresh_cb()

    def _line(self, step: Step) -> str:
        symbol = self.SYMBOLS.get(step.status, " ")
        detail = escape(step.detail.strip())
        if step.status == "pending":
            text = f"{step.label} ({detail})" if detail else step.label
            return f"{symbol} [bright_black]{text}[/bright_black]"
        suffix = f" [bright_black]({detail})[/bright_black]" if detail else ""
        return f"{symbol} [white]{step.label}[/white]{suffix}"

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps.values():
            tree.add(self._line(step))
        return tree
