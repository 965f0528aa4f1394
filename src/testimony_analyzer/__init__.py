"""Testimony Analyzer - structured analysis of hearing transcripts with LLM providers."""

__version__ = "0.1.0"
