"""planauditor - shift-left analysis of infrastructure change plans."""

__version__ = "1.0.0"
