"""yeah-build - build many projects from one YAML file."""

__version__ = "0.1.0"
