"""Wolpertinger: hands out unallocated Tor bridges to censorship measurement probes."""

__version__ = "1.0.0"
