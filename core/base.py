"""Capabilities every ecosystem analyzer and fixer provides."""

from pathlib import Path
from typing import Protocol, runtime_checkable

from .models import AnalysisResult, Fix, Issue


@runtime_checkable
class Analyzer(Protocol):
    name: str
    ecosystem: str

    def detect(self, project_root: str | Path) -> bool: ...

    async def analyze(self, project_root: str | Path) -> AnalysisResult: ...

    def supported_files(self) -> list[str]: ...


@runtime_checkable
class Fixer(Protocol):
    name: str
    ecosystem: str

    def can_fix(self, issue: Issue) -> bool: ...

    async def generate_fixes(self, issue: Issue) -> list[Fix]: ...

    def apply_fix(self, fix: Fix, project_root: str | Path) -> int: ...
