# trivia_generator/__init__.py
# Purpose: Trivia question generation and curation pipeline

"""Batch generation of multiple-choice trivia questions from search facts and an LLM."""

__version__ = "0.1.0"
