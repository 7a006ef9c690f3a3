"""Pattern Lab: design pattern articles with a runnable Python sandbox."""

__version__ = "0.1.0"
