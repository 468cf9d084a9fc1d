"""Gitignore bookkeeping: keeps project-scope memory out of version control."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

TOM_GITIGNORE_ENTRY = ".claude/tom/"


@dataclass(frozen=True)
class GitignoreResult:
    action: Literal["added", "already_present", "no_gitignore"]
    gitignore_path: Path

    def describe(self) -> str:
        if self.action == "added":
            return f"Added '{TOM_GITIGNORE_ENTRY}' to {self.gitignore_path}"
        if self.action == "already_present":
            return f"'{TOM_GITIGNORE_ENTRY}' already present in {self.gitignore_path}"
        return "No .gitignore file found in project root. Skipping."


def ensure_gitignore_entry(project_root: Path) -> GitignoreResult:
    """Append the tom directory to an existing ``.gitignore`` if it is missing.

    A project without a ``.gitignore`` is left alone.
    """
    gitignore = project_root / ".gitignore"
    if not gitignore.is_file():
        return GitignoreResult(action="no_gitignore", gitignore_path=gitignore)

    content = gitignore.read_text(encoding="utf-8")
    if any(line.strip() == TOM_GITIGNORE_ENTRY for line in content.split("\n")):
        return GitignoreResult(action="already_present", gitignore_path=gitignore)

    prefix = "" if content.endswith("\n") or not content else "\n"
    with gitignore.open("a", encoding="utf-8") as fh:
        fh.write(f"{prefix}{TOM_GITIGNORE_ENTRY}\n")
    return GitignoreResult(action="added", gitignore_path=gitignore)
