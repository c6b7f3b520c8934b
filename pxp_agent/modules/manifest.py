"""Module layer — Module manifest.

A ModuleManifest is the machine-readable description of a module: its name,
version and the actions it exposes.  Built-in modules declare theirs in code;
external modules produce one from the executable's self-description.

Actions carry no parameter schema.  Requests are validated only for the
presence of ``module`` and ``action``; each action interprets its own params.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ActionSpec:
    """Description of a single action exposed by a module."""

    name: str
    description: str = ""


@dataclass(frozen=True)
class ModuleManifest:
    """Complete description of a module.

    ``source`` is ``"internal"`` for in-process modules and ``"external"`` for
    modules backed by an executable, in which case ``path`` locates it.
    """

    module_id: str
    version: str
    description: str = ""
    actions: tuple[ActionSpec, ...] = field(default_factory=tuple)
    source: str = "internal"
    path: str | None = None

    def get_action(self, action_name: str) -> ActionSpec | None:
        for action in self.actions:
            if action.name == action_name:
                return action
        return None

    def action_names(self) -> list[str]:
        return [a.name for a in self.actions]

    def to_dict(self) -> dict[str, Any]:
        return {
            "module_id": self.module_id,
            "version": self.version,
            "description": self.description,
            "source": self.source,
            "path": self.path,
            "actions": [
                {"name": a.name, "description": a.description} for a in self.actions
            ],
        }
