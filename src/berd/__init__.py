"""Berd: a tokenizer, Pratt parser and evaluator for a small scripting language."""

__version__ = "0.1.0"
