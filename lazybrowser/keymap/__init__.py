"""Key binding trie and key-sequence resolution."""

from .bindings import Binding, BindingTable, Handler, InternalHandler, ScriptHandler
from .engine import FeedOutcome, KeySequenceEngine, SequenceState
from .tokens import ESCAPE, format_sequence, normalize_token, tokenize_sequence

__all__ = [
    "Binding",
    "BindingTable",
    "ESCAPE",
    "FeedOutcome",
    "Handler",
    "InternalHandler",
    "KeySequenceEngine",
    "ScriptHandler",
    "SequenceState",
    "format_sequence",
    "normalize_token",
    "tokenize_sequence",
]
