"""Top-level package for Lingoflash.

This package routes language-learning generation requests (flashcards,
definitions, mnemonics, translations, examples) to LLM providers. The main
entry point is `Gateway`, built from a `GatewayContext`.
"""

from .gateway import Gateway, GatewayContext

__all__ = ["Gateway", "GatewayContext", "__version__"]

__version__ = "0.1.0"
