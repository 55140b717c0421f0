"""Case stage workflow and document permission engines for expropriation case files."""

__version__ = "0.1.0"
