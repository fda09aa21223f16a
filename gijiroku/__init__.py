"""Top-level package for gijiroku."""

from . import config, enrichment, export, parser, session, speakers, transcript

__all__ = ["config", "enrichment", "export", "parser", "session", "speakers", "transcript"]
