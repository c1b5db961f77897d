"""LeadLines assistant: conversation threads, runs and files over an assistant provider."""

__version__ = "0.1.0"
