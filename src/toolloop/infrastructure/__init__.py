"""Infrastructure layer for toolloop.

Contains:
- adapters/: LanguageModel implementations (callback-backed)
"""

from toolloop.infrastructure.adapters import CallbackLanguageModel

__all__ = [
    "CallbackLanguageModel",
]
