"""Student requirements portal — draft, attach, stage and submit required documents."""

__version__ = "0.1.0"
