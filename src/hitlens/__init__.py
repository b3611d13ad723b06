"""hitlens: outline, diagnostics, completion and references for hierarchical input decks."""

__version__ = "0.1.0"
