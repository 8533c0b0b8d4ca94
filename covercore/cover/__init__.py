"""Cover — каталог продуктов и покупка покрытия."""

from .cover import Cover

__all__ = ["Cover"]
