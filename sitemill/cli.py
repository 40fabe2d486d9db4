from dataclasses import dataclass, field
from .context import BuildReason
from .exec import RenderError


@dataclass
class BuildStats:
    created: int = 0
    changed: int = 0
    unchanged: int = 0
    deleted: int = 0
    pages: int = 0
    assets: int = 0
    failures: list[RenderError] = field(default_factory=list)
    time_seconds: float = 0.0

    @property
    def errors(self) -> int:
        return len(self.failures)

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    def summary(self) -> str:
        if self.pages == 0 and self.assets == 0:
            return "Nothing to do."

        status = (
            "Build finished with errors."
            if self.errors
            else "Build finished successfully."
        )
        lines = [
            status,
            f"Processed {self.pages} pages and {self.assets} assets in {self.time_seconds:.2f}s.",
        ]
        stats = [
            ("Created", self.created),
            ("Changed", self.changed),
            ("Unchanged", self.unchanged),
            ("Deleted", self.deleted),
            ("Errors", self.errors),
        ]

        width = max(len(name) for name, _ in stats)
        for name, value in stats:
            if value:
                lines.append(f"  {name.ljust(width)} {value}")
        for failure in self.failures:
            lines.append(f"  - {failure.message}")
        return "\n".join(lines)

    def add_stat(self, build_reason: BuildReason):
        match build_reason:
            case BuildReason.CHANGED:
                self.changed += 1
            case BuildReason.UNCHANGED:
                self.unchanged += 1
            case BuildReason.CREATED:
                self.created += 1
            case BuildReason.DELETED:
                self.deleted += 1
