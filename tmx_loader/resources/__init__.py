"""Image and atlas resources consumed by the tileset builder"""

from .images import (
    AssetDescriptor, AssetManager, AssetManagerImageResolver,
    DirectImageResolver, ImageRegion, ImageResolver, load_image,
)
from .atlas import (
    AssetManagerAtlasResolver, AtlasPage, AtlasRegion,
    DirectAtlasResolver, TextureAtlas,
)

__all__ = [
    "AssetDescriptor",
    "AssetManager",
    "AssetManagerImageResolver",
    "DirectImageResolver",
    "ImageRegion",
    "ImageResolver",
    "load_image",
    "AssetManagerAtlasResolver",
    "AtlasPage",
    "AtlasRegion",
    "DirectAtlasResolver",
    "TextureAtlas",
]
