# kestrel/scene/__init__.py
from kestrel.scene.loader import (
    DefinitionTable,
    Diagnostics,
    Scene,
    SceneLoader,
)

__all__ = [
    "DefinitionTable",
    "Diagnostics",
    "Scene",
    "SceneLoader",
]
