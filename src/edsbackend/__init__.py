"""edsbackend — Authenticated EBSCO Discovery Service search backend."""

__version__ = "0.1.0"
