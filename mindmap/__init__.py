"""Mind-map engine: embedding-driven concept graphs with LLM expansion."""

__version__ = "0.1.0"
