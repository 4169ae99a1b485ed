"""ChefSocial voice pipeline: voice memos to restaurant social media posts."""

__version__ = "0.1.0"
