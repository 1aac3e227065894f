"""threadview: reconcile a live agent thread and surface its vetting Q&A."""

__version__ = "0.1.0"
