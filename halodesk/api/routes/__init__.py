from . import halopsa

__all__ = [
    "halopsa",
]
