"""Translation practice backed by a generative text model."""

__version__ = "0.1.0"
