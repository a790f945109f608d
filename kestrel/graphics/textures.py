# kestrel/graphics/textures.py
import logging
from typing import Dict, Iterable, Iterator, List, Optional

from kestrel.assets.types import TextureData
from kestrel.errors import ResolutionError

logger = logging.getLogger(__name__)


class TextureDictionary:
    """Every texture decoded for a scene, by lowercase name. Later dictionaries win."""

    def __init__(self) -> None:
        self._textures: Dict[str, TextureData] = {}
        self.rejected: List[ResolutionError] = []

    def add(self, texture: TextureData) -> bool:
        if texture.depth < 24:
            error = ResolutionError(
                f"{texture.depth}-bit texture {texture.name} is not supported",
                subject=texture.name,
            )
            logger.warning("%s", error)
            self.rejected.append(error)
            return False
        self._textures[texture.name.lower()] = texture
        return True

    def add_all(self, textures: Iterable[TextureData]) -> int:
        return sum(1 for t in textures if self.add(t))

    def get(self, name: str) -> Optional[TextureData]:
        return self._textures.get(name.lower())

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._textures

    def __iter__(self) -> Iterator[TextureData]:
        return iter(self._textures.values())

    def __len__(self) -> int:
        return len(self._textures)
