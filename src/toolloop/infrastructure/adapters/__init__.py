"""Adapters implementing application interfaces."""

from toolloop.infrastructure.adapters.callback_language_model import CallbackLanguageModel

__all__ = [
    "CallbackLanguageModel",
]
